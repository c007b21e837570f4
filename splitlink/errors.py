class SplitlinkError(Exception):
    """Base class for errors raised by splitlink's core."""


class AllocationExhausted(SplitlinkError):
    def __init__(self, attempts: int):
        super().__init__(f"No free short code after {attempts} attempts")
        self.attempts = attempts


class CodeTaken(SplitlinkError):
    def __init__(self, code: str):
        super().__init__(f"Short code '{code}' is already in use")
        self.code = code


class AuthFailed(SplitlinkError):
    """The Twitter OAuth handshake did not produce an access token."""
