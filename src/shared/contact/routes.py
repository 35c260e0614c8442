"""Contact routes: public message submission and admin inbox management."""

import logging
from typing import Any, Dict, List
from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from src.shared.auth.database import get_db, AdminUser
from src.shared.auth.dependencies import get_current_admin
from src.shared.contact.database import ContactMessage
from src.shared.contact.schemas import ContactMessageResponse, ContactRequest, ContactSubmitResponse
from src.shared.security.dependencies import guard_submission, parse_submission
from src.shared.security.outcomes import RouteClass

router = APIRouter(prefix="/api/messages", tags=["contact"])


@router.post("", response_model=ContactSubmitResponse, status_code=status.HTTP_201_CREATED)
async def submit_contact_message(
    request: Request,
    response: Response,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    """
    Submit a contact form message.

    Protected by:
    - Per-visitor rate limiting (3 messages per hour by default), keyed by the
      browser identifier so switching IP or VPN does not reset it
    - Honeypot fields, disposable email filter, challenge verification and
      submission timing, checked on the raw payload before validation
    """
    cleaned = await guard_submission(request, response, RouteClass.CONTACT, payload)
    contact_data = parse_submission(ContactRequest, cleaned)

    message = ContactMessage(
        name=contact_data.name,
        email=contact_data.email,
        subject=contact_data.subject,
        message=contact_data.message,
    )
    db.add(message)
    db.commit()
    db.refresh(message)

    logging.info(f"Contact message {message.id} stored")
    return ContactSubmitResponse(
        success=True,
        message="Your message has been sent successfully! I'll get back to you soon.",
        id=message.id,
    )


@router.get("", response_model=List[ContactMessageResponse])
async def list_contact_messages(
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """List all contact messages, newest first."""
    return db.query(ContactMessage).order_by(ContactMessage.created_at.desc()).all()


def _get_message_or_404(db: Session, message_id: str) -> ContactMessage:
    message = db.query(ContactMessage).filter(ContactMessage.id == message_id).first()
    if not message:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Message not found"
        )
    return message


@router.patch("/{message_id}/read", response_model=ContactMessageResponse)
async def mark_message_read(
    message_id: str,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    message = _get_message_or_404(db, message_id)
    message.read = True
    db.commit()
    db.refresh(message)
    return message


@router.delete("/{message_id}")
async def delete_message(
    message_id: str,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    message = _get_message_or_404(db, message_id)
    db.delete(message)
    db.commit()
    return {"message": "Deleted successfully"}
