from fastapi import HTTPException, status


class AuthenticationFailure(HTTPException):
    def __init__(self, reason: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Webhook Error: {reason}")


class ValidationFailure(HTTPException):
    def __init__(self, error_detail_message: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=error_detail_message)


class UpstreamFailure(HTTPException):
    def __init__(self, error_detail_message: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error_detail_message)


class ForwardingFailure(Exception):
    """Downstream automation hook rejected or never received a payload."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code
