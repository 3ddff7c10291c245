from marshmallow import Schema, fields, validate

class AnswerSchema(Schema):
    question_id = fields.UUID(required=True)
    # Exactly one of these; the voting service enforces it against the ballot
    option_id = fields.UUID(load_default=None, allow_none=True)
    write_in = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=200))

class VoteCastSchema(Schema):
    answers = fields.List(fields.Nested(AnswerSchema), required=True)

class VoteReceiptSchema(Schema):
    message = fields.Str(required=True)
    ballot_id = fields.UUID()
    roster_entry_id = fields.UUID()
    votes_recorded = fields.Int()
    cast_at = fields.DateTime()

class VoteStatusSchema(Schema):
    registered = fields.Bool(required=True)
    has_voted = fields.Bool(required=True)
    voted_at = fields.DateTime(allow_none=True)
