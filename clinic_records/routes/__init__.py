def error(code: str, http: int, message: str, details=None):
    """Return a consistent JSON error payload with HTTP status."""
    payload = {"code": code, "message": message}
    if details is not None:
        payload["details"] = details
    return payload, http
