"""Contact form intake. Each submission is a write-once row."""

from typing import Optional

from sqlalchemy.orm import Session

from storefront.errors import ValidationFailed
from storefront.models import ContactSubmission
from storefront.operations import require_db, storage_errors, track_operation
from storefront.schemas import ContactConfirmation, ContactRequest

REQUIRED_FIELDS = ("name", "email", "subject", "message")
CONFIRMATION_MESSAGE = "Thank you for your message! We'll get back to you soon."


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def submit_contact(db: Optional[Session], request: ContactRequest) -> ContactConfirmation:
    """
    Raises:
        ValidationFailed: any of name, email, subject, message missing or blank
    """
    fields = {name: _clean(getattr(request, name)) for name in REQUIRED_FIELDS}
    with track_operation("submit_contact", params={"is_consultation": request.is_consultation}):
        missing = [name for name, value in fields.items() if not value]
        if missing:
            raise ValidationFailed(
                "Name, email, subject, and message are required",
                details={"missing": missing},
            )
        db = require_db(db)

        with storage_errors(db, "submit_contact"):
            submission = ContactSubmission(
                name=fields["name"],
                email=fields["email"],
                subject=fields["subject"],
                message=fields["message"],
                phone=_clean(request.phone),
                is_consultation=bool(request.is_consultation),
                preferred_date=request.preferred_date,
            )
            db.add(submission)
            db.commit()
            db.refresh(submission)

        return ContactConfirmation(message=CONFIRMATION_MESSAGE, id=submission.id)
