from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import AuthContext, get_admin_context
from app.schemas.user import RestrictUserRequest
from app.schemas.common import ErrorResponse, SuccessResponse, success_response
from app.services.user_service import user_service

router = APIRouter(
    prefix="/users",
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


# GET /users/{id} (admin only)
@router.get("/{user_id}", status_code=status.HTTP_200_OK, summary="Get user by ID",
            response_model=SuccessResponse)
def get_user(
    user_id: int,
    db:      Session     = Depends(get_db),
    _:       AuthContext = Depends(get_admin_context),
):
    data = user_service.get_user(db, user_id)
    return success_response("User retrieved", data)


# PATCH /users/{id}/restrict (admin only)
@router.patch("/{user_id}/restrict", status_code=status.HTTP_200_OK, summary="Restrict a user",
              response_model=SuccessResponse)
def restrict_user(
    user_id: int,
    body:    RestrictUserRequest,
    background_tasks: BackgroundTasks,
    db:      Session     = Depends(get_db),
    context: AuthContext = Depends(get_admin_context),
):
    data = user_service.restrict_user(db, user_id, body.reason, context.user_id, background_tasks)
    return success_response("User restricted successfully", data)


# PATCH /users/{id}/lift-restriction (admin only)
@router.patch("/{user_id}/lift-restriction", status_code=status.HTTP_200_OK,
              summary="Lift the restriction on a user", response_model=SuccessResponse)
def lift_restriction(
    user_id: int,
    background_tasks: BackgroundTasks,
    db:      Session     = Depends(get_db),
    context: AuthContext = Depends(get_admin_context),
):
    data = user_service.lift_restriction(db, user_id, context.user_id, background_tasks)
    return success_response("User restriction lifted successfully", data)
