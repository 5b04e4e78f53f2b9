"""
Pharma Field Sales - Routes MR Requests
Public application form + Admin review (approve / reject / delete).
"""

from fastapi import APIRouter, Depends, BackgroundTasks
from typing import Optional

from models.mr_request import MRRequestSubmit, MRRequestReject
from services import mr_requests as workflow
from services.api_response import ok
from services.permissions import require_admin

router = APIRouter(prefix="/mr-requests", tags=["MR Requests"])


# ==================== PUBLIC ====================

@router.post("", status_code=201)
async def submit_request(data: MRRequestSubmit, background_tasks: BackgroundTasks):
    """No authentication: this is the access-request form."""
    request = await workflow.submit_request(
        name=data.name,
        email=data.email,
        phone=data.phone,
        area=data.area,
        experience=data.experience,
    )
    # Sent after the response, a slow mail provider never delays the applicant
    background_tasks.add_task(workflow.notify_application_received, request)
    return ok(
        {"id": request["id"], "status": request["status"]},
        message="Application submitted, you will be notified by email"
    )


# ==================== ADMIN ====================

@router.get("")
async def list_requests(status: Optional[str] = None, admin: dict = Depends(require_admin)):
    requests = await workflow.list_requests(status)
    return ok({"count": len(requests), "requests": requests})


@router.get("/{request_id}")
async def get_request(request_id: str, admin: dict = Depends(require_admin)):
    return ok(await workflow.get_request(request_id))


@router.post("/{request_id}/approve")
async def approve_request(request_id: str, admin: dict = Depends(require_admin)):
    result = await workflow.approve_request(request_id, admin)
    return ok(
        {
            "request": result["request"],
            "user": result["user"],
            "credentials": result["credentials"],
            "email_sent": result["email_sent"],
        },
        message="Request approved, MR account created",
        warning=None if result["email_sent"] else workflow.EMAIL_WARNING,
    )


@router.post("/{request_id}/reject")
async def reject_request(
    request_id: str,
    data: Optional[MRRequestReject] = None,
    admin: dict = Depends(require_admin)
):
    reason = data.reason if data else None
    result = await workflow.reject_request(request_id, admin, reason)
    return ok(
        result,
        message="Request rejected",
        warning=None if result["email_sent"] else workflow.EMAIL_WARNING,
    )


@router.delete("/{request_id}")
async def delete_request(request_id: str, admin: dict = Depends(require_admin)):
    await workflow.delete_request(request_id)
    return ok(message="Request deleted")
