from fastapi import APIRouter, Depends, status

from app.dependencies import AuthContext, get_auth_context_allow_restricted
from app.schemas.common import SuccessResponse, success_response
from app.services.user_service import serialize_user

router = APIRouter(prefix="/profile")


# GET /profile: any authenticated user, restricted accounts included
@router.get("", status_code=status.HTTP_200_OK, summary="Get current user profile",
            response_model=SuccessResponse)
def get_profile(context: AuthContext = Depends(get_auth_context_allow_restricted)):
    return success_response("User profile fetched successfully.", serialize_user(context.user))
