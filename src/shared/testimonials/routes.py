"""Testimonial routes: public submission and listing, admin moderation."""

import logging
from typing import Any, Dict, List
from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from src.shared.auth.database import get_db, AdminUser
from src.shared.auth.dependencies import get_current_admin
from src.shared.auth.input_validation import validate_long_text, validate_name
from src.shared.security.dependencies import guard_submission, parse_submission
from src.shared.security.outcomes import RouteClass
from src.shared.testimonials.database import Testimonial
from src.shared.testimonials.schemas import (
    TestimonialAdminResponse,
    TestimonialRequest,
    TestimonialResponse,
    TestimonialUpdate,
)

router = APIRouter(prefix="/api/testimonials", tags=["testimonials"])


@router.post("", response_model=TestimonialResponse, status_code=status.HTTP_201_CREATED)
async def submit_testimonial(
    request: Request,
    response: Response,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    """
    Submit a testimonial. It stays hidden until the site owner approves it.

    Same protection as the contact form: rate limiting, honeypot, disposable
    email filter (when an email is given), challenge verification and timing.
    """
    cleaned = await guard_submission(request, response, RouteClass.TESTIMONIAL, payload)
    data = parse_submission(TestimonialRequest, cleaned)

    testimonial = Testimonial(
        author=data.author,
        role=data.role,
        email=data.email,
        content=data.content,
        approved=False,
    )
    db.add(testimonial)
    db.commit()
    db.refresh(testimonial)

    logging.info(f"Testimonial {testimonial.id} stored, pending approval")
    return testimonial


@router.get("", response_model=List[TestimonialResponse])
async def list_approved_testimonials(db: Session = Depends(get_db)):
    """Approved testimonials for the public site, newest first."""
    return (
        db.query(Testimonial)
        .filter(Testimonial.approved.is_(True))
        .order_by(Testimonial.created_at.desc())
        .all()
    )


@router.get("/admin", response_model=List[TestimonialAdminResponse])
async def list_all_testimonials(
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Every testimonial, including those awaiting approval."""
    return db.query(Testimonial).order_by(Testimonial.created_at.desc()).all()


def _get_testimonial_or_404(db: Session, testimonial_id: str) -> Testimonial:
    testimonial = db.query(Testimonial).filter(Testimonial.id == testimonial_id).first()
    if not testimonial:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Testimonial not found"
        )
    return testimonial


@router.put("/{testimonial_id}", response_model=TestimonialAdminResponse)
async def update_testimonial(
    testimonial_id: str,
    update: TestimonialUpdate,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Edit or approve a testimonial."""
    testimonial = _get_testimonial_or_404(db, testimonial_id)

    try:
        if update.author is not None:
            testimonial.author = validate_name(update.author, "Author")
        if update.role is not None:
            testimonial.role = validate_name(update.role, "Role") if update.role.strip() else None
        if update.content is not None:
            testimonial.content = validate_long_text(update.content, "Testimonial", max_length=2000)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if update.approved is not None:
        testimonial.approved = update.approved

    db.commit()
    db.refresh(testimonial)
    return testimonial


@router.delete("/{testimonial_id}")
async def delete_testimonial(
    testimonial_id: str,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    testimonial = _get_testimonial_or_404(db, testimonial_id)
    db.delete(testimonial)
    db.commit()
    return {"message": "Deleted successfully"}
