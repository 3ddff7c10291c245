from marshmallow import Schema, fields

class OptionResultSchema(Schema):
    option_id = fields.UUID(required=True)
    text = fields.Str(required=True)
    sub_text = fields.Str(allow_none=True)
    party_name = fields.Str(allow_none=True)
    order_index = fields.Int()
    votes = fields.Int(required=True)
    percentage = fields.Float(required=True)

class WriteInEntrySchema(Schema):
    text = fields.Str(required=True)
    votes = fields.Int(required=True)

class WriteInResultSchema(Schema):
    votes = fields.Int(required=True)
    percentage = fields.Float(required=True)
    entries = fields.List(fields.Nested(WriteInEntrySchema))

class QuestionResultSchema(Schema):
    question_id = fields.UUID(required=True)
    title = fields.Str(required=True)
    order_index = fields.Int()
    allow_write_in = fields.Bool()
    total_votes = fields.Int(required=True)
    options = fields.List(fields.Nested(OptionResultSchema), required=True)
    write_in = fields.Nested(WriteInResultSchema, required=True)

class BallotResultsSchema(Schema):
    ballot_id = fields.UUID(required=True)
    title = fields.Str(required=True)
    status = fields.Str(required=True)
    total_voters = fields.Int(required=True)
    voted_count = fields.Int(required=True)
    participation_rate = fields.Float(required=True)
    questions = fields.List(fields.Nested(QuestionResultSchema), required=True)

class SnapshotOptionSchema(Schema):
    option_id = fields.UUID(allow_none=True)
    is_write_in = fields.Bool()
    votes = fields.Int()
    percentage = fields.Float()

class SnapshotQuestionSchema(Schema):
    question_id = fields.UUID()
    rows = fields.List(fields.Nested(SnapshotOptionSchema))

class BallotSnapshotSchema(Schema):
    ballot_id = fields.UUID(required=True)
    calculated_at = fields.DateTime(allow_none=True)
    questions = fields.List(fields.Nested(SnapshotQuestionSchema), required=True)

class BallotStatusSchema(Schema):
    ballot_id = fields.UUID(required=True)
    status = fields.Str(required=True)
    max_voters = fields.Int()
    registered_voters = fields.Int()
    voted_count = fields.Int()
    participation_rate = fields.Float()
    votes_cast = fields.Int()
    started_at = fields.DateTime(allow_none=True)
    completed_at = fields.DateTime(allow_none=True)
