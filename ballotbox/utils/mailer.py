from flask_mail import Message
from flask import current_app
from ..extensions import mail

def send_ballot_invitation(to_email: str, ballot) -> None:
    sender = current_app.config.get("MAIL_DEFAULT_SENDER")
    if not sender:
        # Fail fast with a meaningful message (instead of Flask-Mail assertion)
        raise RuntimeError(
            "MAIL_DEFAULT_SENDER is not configured. Set MAIL_DEFAULT_SENDER in .env"
        )

    base_url = current_app.config.get("INVITATION_BASE_URL", "").rstrip("/")
    subject = f"You are invited to vote: {ballot.title}"
    body = (
        f"You have been registered as a voter for \"{ballot.title}\".\n\n"
        f"Voting opens {ballot.start_date:%Y-%m-%d %H:%M} UTC and closes "
        f"{ballot.end_date:%Y-%m-%d %H:%M} UTC.\n"
        f"Cast your vote at: {base_url}/{ballot.id}\n\n"
        "If you were not expecting this invitation, please ignore this email."
    )
    msg = Message(subject=subject, recipients=[to_email], body=body, sender=sender)
    mail.send(msg)
