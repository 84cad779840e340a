"""
Copy-state machine for device-paired matrices.

A `BufferedMatrix` is always in exactly one `CopyState`. Its state-dependent
methods are dispatched through `copy_state_path_manager`, which routes a call
to the implementation registered for the current value of ``self._state``.

Transitions
-----------
    NO_BUFFER      --upload-->           UPLOAD_PENDING
    STALE          --upload-->           UPLOAD_PENDING
    UPLOAD_PENDING --await_upload-->     SYNCED
    UPLOAD_PENDING --host write-->       STALE   (after the copy completes)
    SYNCED         --host write-->       STALE
    any            --release-->          NO_BUFFER
"""

from enum import Enum

from ...domain.utils._control_path import create_path_builder


class CopyState(Enum):
    """
    Relationship between a matrix's host data and its device buffer.

    Attributes
    ----------
    NO_BUFFER : CopyState
        No device buffer is allocated.
    UPLOAD_PENDING : CopyState
        A host-to-device copy has been issued and may still be in flight.
    SYNCED : CopyState
        The device buffer holds the same values as the host data.
    STALE : CopyState
        A device buffer exists but the host data has changed since it was
        filled.
    """

    NO_BUFFER = "no_buffer"
    UPLOAD_PENDING = "upload_pending"
    SYNCED = "synced"
    STALE = "stale"


# Control-path manager that dispatches BufferedMatrix methods on `self._state`
copy_state_path_manager = create_path_builder("_state")
