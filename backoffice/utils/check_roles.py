from fastapi import Depends

from backoffice.core.exceptions import CapabilityError
from backoffice.models.users.user_models import User
from backoffice.services.approval.capabilities import (
    CapabilityChecker,
    get_capability_checker,
)
from backoffice.utils.get_user import get_current_user


def require_capability(capability: str):
    async def capability_checker(
        user: User = Depends(get_current_user),
        checker: CapabilityChecker = Depends(get_capability_checker),
    ):
        if not checker.has_capability(user, capability):
            raise CapabilityError(
                f"Permission denied: {capability} is required",
                details={"capability": capability},
            )
        return user
    return capability_checker
