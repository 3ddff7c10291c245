from marshmallow import Schema, fields

from .ballot import BallotSummarySchema

class ElectionSummarySchema(Schema):
    active_elections = fields.Int(required=True)
    draft_elections = fields.Int(required=True)
    complete_elections = fields.Int(required=True)
    total_voters = fields.Int(required=True)
    total_votes = fields.Int(required=True)
    ballots_voted = fields.Int(required=True)

class ElectionListItemSchema(Schema):
    ballot = fields.Nested(BallotSummarySchema, required=True)
    creator_name = fields.Str(allow_none=True)
