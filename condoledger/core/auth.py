from fastapi import HTTPException, Request

ACTING_USER_HEADER = "X-Acting-User"


def get_acting_user(request: Request) -> str:
    """Return the acting user forwarded by the authenticating gateway.

    Identity is trusted as-is; the caller is responsible for authorization
    (e.g. only board members of a building may approve payments).
    """
    user = request.headers.get(ACTING_USER_HEADER, "").strip()
    if not user:
        raise HTTPException(status_code=401, detail=f"{ACTING_USER_HEADER} header is required")
    if len(user) > 255:
        raise HTTPException(status_code=400, detail=f"Invalid {ACTING_USER_HEADER} header")
    return user
