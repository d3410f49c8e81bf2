"""
Exception classes untuk lock protocol.
"""


class LockError(Exception):
    """Base class untuk semua lock errors"""
    pass


class PathCreationFailure(LockError):
    """ Raised when the resource path (the parent of the request nodes)
    could not be ensured on the coordination service.
    """
    pass


class CoordinationFailure(LockError):
    """ Raised whenever the coordination service client fails at transport
    or session level (create, exists, get_children, remove).
    """
    pass


class TimeoutExceeded(LockError):
    """ Raised when the acquisition deadline passed while the request was
    still blocked by a higher priority request.
    """
    pass
