from fastapi import HTTPException


class BaseHTTPException(HTTPException):
    """
    Error rendered as ``{"error", "message", "url"?}``.

    ``detail`` holds the short error label, ``message`` the human readable
    explanation. ``url`` is the upstream target when one is known.
    """

    status_code: int = 500
    detail: str = ""
    message: str = ""

    def __init__(self, message: str | None = None, url: str | None = None):
        super().__init__(status_code=self.status_code, detail=self.detail)
        self.message = message or self.__class__.message
        self.url = url

    def to_dict(self) -> dict[str, str]:
        body = {"error": self.detail}
        if self.message:
            body["message"] = self.message
        if self.url:
            body["url"] = self.url
        return body


class UpstreamKeyFetchError(BaseHTTPException):
    status_code = 500
    detail = "Failed to fetch WBI keys"
    message = "WBI key endpoint returned no usable keys."


class UpstreamForwardError(BaseHTTPException):
    status_code = 500
    detail = "Proxy request failed"
    message = "Upstream request failed."


class BlockedRequestError(BaseHTTPException):
    status_code = 404
    detail = "Not found"
