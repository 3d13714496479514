"""Exception classes raised by the IPAM checker."""


class IpamCheckError(Exception):
    """Base exception for IPAM check failures."""

    pass


class ConnectorError(IpamCheckError):
    """A datastore request failed after all retries."""

    pass


class ListingError(IpamCheckError):
    """One of the bulk listing calls failed."""

    def __init__(self, listing: str, cause: BaseException):
        self.listing = listing
        self.cause = cause
        super().__init__(f"failed to list {listing}: {cause}")


class ParseError(IpamCheckError):
    """An address or CIDR string could not be parsed."""

    def __init__(self, value: str, source: str = "", reason: str = ""):
        self.value = value
        self.source = source
        self.reason = reason
        message = f"failed to parse IP ({value})"
        if source:
            message += f" of {source}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class PoolParseError(ParseError):
    """An active IP pool CIDR could not be parsed."""

    def __init__(self, cidr: str, reason: str = ""):
        self.value = cidr
        self.source = "IP pool"
        self.reason = reason
        IpamCheckError.__init__(self, f"failed to parse IP pool CIDR ({cidr}): {reason}")
