from datetime import datetime, timezone
from marshmallow import Schema, fields, validate, validates_schema, post_load, ValidationError


def to_naive_utc(dt: datetime | None) -> datetime | None:
    """Aware -> naive UTC for consistent DB comparisons; naive values are taken as UTC."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


class OptionCreateSchema(Schema):
    text = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    sub_text = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))
    party_name = fields.Str(required=False, allow_none=True, validate=validate.Length(max=200))
    order_index = fields.Int(required=False, validate=validate.Range(min=0))


class QuestionCreateSchema(Schema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=300))
    description = fields.Str(required=False, allow_none=True)
    allow_write_in = fields.Bool(load_default=False)
    order_index = fields.Int(required=False, validate=validate.Range(min=0))
    options = fields.List(fields.Nested(OptionCreateSchema), load_default=list)

    @validates_schema
    def answerable(self, data, **kwargs):
        if not data.get("options") and not data.get("allow_write_in"):
            raise ValidationError("A question needs options or must allow write-ins", "options")


class VoterSeedSchema(Schema):
    # Per-address validity is reported by the roster outcome
    email = fields.Str(required=True)


class BallotCreateSchema(Schema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    description = fields.Str(required=False, allow_none=True)
    start_date = fields.DateTime(required=True)
    end_date = fields.DateTime(required=True)
    max_voters = fields.Int(required=True, validate=validate.Range(min=1))
    questions = fields.List(fields.Nested(QuestionCreateSchema), required=True, validate=validate.Length(min=1))
    voters = fields.List(fields.Nested(VoterSeedSchema), load_default=list, validate=validate.Length(max=5000))

    @post_load
    def normalize(self, data, **kwargs):
        data["start_date"] = to_naive_utc(data["start_date"])
        data["end_date"] = to_naive_utc(data["end_date"])
        data["voters"] = [v["email"] for v in data.get("voters") or []]
        return data

    @validates_schema
    def valid_window(self, data, **kwargs):
        start = to_naive_utc(data.get("start_date"))
        end = to_naive_utc(data.get("end_date"))
        if start is None or end is None:
            return
        if start < datetime.utcnow():
            raise ValidationError("Start date cannot be in the past", "start_date")
        if end < start:
            raise ValidationError("End date cannot be before start date", "end_date")


class BallotUpdateSchema(Schema):
    title = fields.Str(required=False, validate=validate.Length(min=1, max=200))
    description = fields.Str(required=False, allow_none=True)
    start_date = fields.DateTime(required=False)
    end_date = fields.DateTime(required=False)
    max_voters = fields.Int(required=False, validate=validate.Range(min=1))

    @validates_schema
    def at_least_one_field(self, data, **kwargs):
        if not data:
            raise ValidationError("At least one field must be provided")

    @post_load
    def normalize_dates(self, data, **kwargs):
        for key in ("start_date", "end_date"):
            if key in data:
                data[key] = to_naive_utc(data[key])
        return data


class ReorderSchema(Schema):
    ids = fields.List(fields.UUID(), required=True, validate=validate.Length(min=1))


class OptionReadSchema(Schema):
    id = fields.UUID()
    text = fields.Str()
    sub_text = fields.Str(allow_none=True)
    party_name = fields.Str(allow_none=True)
    order_index = fields.Int()


class QuestionReadSchema(Schema):
    id = fields.UUID()
    ballot_id = fields.UUID()
    title = fields.Str()
    description = fields.Str(allow_none=True)
    order_index = fields.Int()
    allow_write_in = fields.Bool()
    options = fields.List(fields.Nested(OptionReadSchema))
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class BallotReadSchema(Schema):
    id = fields.UUID()
    created_by = fields.UUID()
    title = fields.Str()
    description = fields.Str(allow_none=True)
    status = fields.Str()
    start_date = fields.DateTime()
    end_date = fields.DateTime()
    max_voters = fields.Int()
    registered_voters = fields.Int()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
    started_at = fields.DateTime(allow_none=True)
    completed_at = fields.DateTime(allow_none=True)
    questions = fields.List(fields.Nested(QuestionReadSchema))


class BallotSummarySchema(Schema):
    id = fields.UUID()
    created_by = fields.UUID()
    title = fields.Str()
    status = fields.Str()
    start_date = fields.DateTime()
    end_date = fields.DateTime()
    max_voters = fields.Int()
    registered_voters = fields.Int()
    created_at = fields.DateTime()
