# TimeAudit - Time Off Routes
# Leave requests and the month calendar

import base64
import binascii
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from timeaudit.dependencies import get_current_user, get_workspace
from timeaudit.schemas import TimeOffType, User
from timeaudit.services.overlap_layout import assign_slots, requests_for_user, slot_count
from timeaudit.services.week_clock import today_in
from timeaudit.services.workspace import Workspace


router = APIRouter(prefix="/time-off", tags=["time-off"])


class TimeOffForm(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    start_time: str = "09:00"
    end_time: str = "17:00"
    type: TimeOffType = TimeOffType.ANNUAL_LEAVE
    reason: str = ""
    # Base64 file content, as a browser FileReader produces it
    attachment: Optional[str] = None
    attachment_name: Optional[str] = None


@router.get("")
async def my_requests(
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """The user's own requests, earliest first."""
    return [r.to_local() for r in workspace.time_off_for_user(user.id)]


@router.post("", status_code=201)
async def request_time_off(
    form: TimeOffForm,
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """Book leave; new requests start out pending."""
    attachment = None
    if form.attachment:
        try:
            attachment = base64.b64decode(form.attachment, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail="Attachment must be base64 encoded")

    try:
        request = workspace.create_time_off(
            user_id=user.id,
            start_date=form.start_date,
            end_date=form.end_date,
            start_time=form.start_time,
            end_time=form.end_time,
            type=form.type.value,
            reason=form.reason,
            attachment=attachment,
            attachment_name=form.attachment_name,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return request.to_local()


@router.get("/calendar")
async def calendar(
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
):
    """
    Sunday-first month grid of the user's leave.

    Each day cell lists request ids by display slot; null marks an empty
    slot so a multi-day bar stays on one row. Leading null cells pad the
    first week.
    """
    today = today_in(workspace.timezone)
    year, month = year or today.year, month or today.month

    cells = workspace.time_off_calendar(user.id, year, month)
    slots = assign_slots(requests_for_user(workspace.state.time_off_requests, user.id))
    return {
        "year": year,
        "month": month,
        "slotCount": slot_count(slots),
        "days": [
            {
                "date": cell.day.isoformat(),
                "rows": [r.id if r else None for r in cell.rows],
            }
            if cell
            else None
            for cell in cells
        ],
    }
