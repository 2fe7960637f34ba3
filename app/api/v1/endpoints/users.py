"""User endpoints."""

from fastapi import APIRouter, status

from app.dependencies import CurrentUser, VectorDatabases
from app.schemas.users import UserResponse

router = APIRouter()


@router.get(
    "/users/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    tags=["Users"],
    summary="Get current user profile",
)
async def get_current_user_profile(
    current_user: CurrentUser,
    vector_databases: VectorDatabases,
) -> UserResponse:
    """
    Get the signed-in user with their vector database.

    Returns:
        User profile and vector database ID
    """
    vector_database = await vector_databases.get_by_user_id(current_user.id)

    return UserResponse(
        user_id=current_user.user_id,
        email=current_user.email,
        name=current_user.name,
        avatar_url=current_user.avatar_url,
        vector_db_id=vector_database.vector_db_id if vector_database else None,
    )
