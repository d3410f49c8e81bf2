"""Core lock protocol: naming, contention rules, acquisition loop, facade"""

from .exceptions import LockError, PathCreationFailure, CoordinationFailure, TimeoutExceeded
from .naming import LockType, build_prefix, parse_index
from .contention import ContentionEvaluator
from .acquisition import AcquisitionLoop, PollingWaiter, WatchingWaiter
from .lock import Lock, LockResult, LockFailure

__all__ = [
    'LockError', 'PathCreationFailure', 'CoordinationFailure', 'TimeoutExceeded',
    'LockType', 'build_prefix', 'parse_index',
    'ContentionEvaluator', 'AcquisitionLoop', 'PollingWaiter', 'WatchingWaiter',
    'Lock', 'LockResult', 'LockFailure',
]
