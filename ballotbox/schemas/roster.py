from marshmallow import Schema, fields, validate

class AddVotersSchema(Schema):
    # Per-address validity is reported item by item, not as a request error
    emails = fields.List(fields.Str(), required=True, validate=validate.Length(min=1, max=5000))
    send_invitations = fields.Bool(load_default=False)

class RosterEntryReadSchema(Schema):
    id = fields.UUID()
    ballot_id = fields.UUID()
    user_id = fields.UUID(allow_none=True)
    email = fields.Str()
    display_name = fields.Str(allow_none=True)
    voted = fields.Bool()
    voted_at = fields.DateTime(allow_none=True)
    invitation_sent = fields.Bool()
    registration_date = fields.DateTime()

class AddVoterItemSchema(Schema):
    email = fields.Str()
    status = fields.Str()
    reason = fields.Str(allow_none=True)

class AddVotersResultSchema(Schema):
    added = fields.Int(required=True)
    skipped = fields.Int(required=True)
    added_emails = fields.List(fields.Str(), required=True)
    results = fields.List(fields.Nested(AddVoterItemSchema), required=True)
