from ._device import DeviceDescriptor, DeviceKind
from ._device_protocol import DeviceLike, QueueLike

__all__ = [
    DeviceDescriptor.__name__,
    DeviceKind.__name__,
    DeviceLike.__name__,
    QueueLike.__name__,
]
