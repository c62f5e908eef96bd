"""
Vision Result Types
===================

Public per-target results and the message envelope published once per frame.

Wire format (JSON):
    VisionData:    {status, x_m, y_m, z_m, roll_deg, pitch_deg, yaw_deg,
                    imageX_px, imageY_px, theta_deg, dist_m}
    VisionMessage: {cameraId, packets: [VisionData, ...]}

The target id is not part of the wire format; it is the packet's index
in the message and is restored from it on decode.
"""

import json
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Tuple


class VisionStatus(IntEnum):
    """Per-target result status."""
    NO_TARGET_FOUND = 0
    TARGET_FOUND = 1
    PROCESSING_ERROR = 2


# Attribute name -> wire field name
_WIRE_FIELDS = (
    ('x', 'x_m'),
    ('y', 'y_m'),
    ('z', 'z_m'),
    ('roll', 'roll_deg'),
    ('pitch', 'pitch_deg'),
    ('yaw', 'yaw_deg'),
    ('image_x', 'imageX_px'),
    ('image_y', 'imageY_px'),
    ('theta', 'theta_deg'),
    ('dist', 'dist_m'),
)


@dataclass
class VisionData:
    """
    Pose of one target.

    Attributes:
        status: Result status
        target_id: Index of the target within its message (ascending image_x)
        x, y, z: Position in target model units
        roll, pitch, yaw: Orientation in degrees
        image_x, image_y: Target center normalized to (-1, 1), +y up
        theta: Bearing to the target in degrees
        dist: Distance to the target in the x-z plane
    """
    status: VisionStatus = VisionStatus.NO_TARGET_FOUND
    target_id: int = 0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0
    image_x: float = 0.0
    image_y: float = 0.0
    theta: float = 0.0
    dist: float = 0.0

    @property
    def found(self) -> bool:
        return self.status == VisionStatus.TARGET_FOUND

    def to_dict(self) -> Dict[str, Any]:
        d = {'status': int(self.status)}
        for attr, key in _WIRE_FIELDS:
            d[key] = float(getattr(self, attr))
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any], target_id: int = 0) -> 'VisionData':
        """
        Build from a wire dict.

        Raises:
            KeyError: If a wire field is missing
            ValueError: If the status code is unknown
        """
        kwargs = {attr: float(d[key]) for attr, key in _WIRE_FIELDS}
        return cls(status=VisionStatus(int(d['status'])), target_id=target_id, **kwargs)


@dataclass
class VisionMessage:
    """All target results of one camera for one frame."""
    camera_id: int
    packets: List[VisionData] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cameraId': int(self.camera_id),
            'packets': [p.to_dict() for p in self.packets],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'VisionMessage':
        packets = [VisionData.from_dict(p, target_id=i) for i, p in enumerate(d['packets'])]
        return cls(camera_id=int(d['cameraId']), packets=packets)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> 'VisionMessage':
        return cls.from_dict(json.loads(text))


def encode_messages(messages: List[VisionMessage]) -> bytes:
    """Encode a batch of messages as one UTF-8 JSON array."""
    return json.dumps([m.to_dict() for m in messages]).encode('utf-8')


def decode_messages(payload: bytes) -> List[VisionMessage]:
    """Decode a batch produced by encode_messages."""
    return [VisionMessage.from_dict(d) for d in json.loads(payload.decode('utf-8'))]


@dataclass
class FinderResult:
    """
    Result of processing one frame.

    Attributes:
        data: Per-target results, sorted and numbered
        targets: Targets behind the results, same order
        contours_found: False if no contour survived the size filter
        processing_time: Time taken in seconds
        frame_size: Size of input frame (width, height)
        timestamp: Unix timestamp of processing
    """
    data: List[VisionData] = field(default_factory=list)
    targets: List[Any] = field(default_factory=list)
    contours_found: bool = False
    processing_time: float = 0.0
    frame_size: Tuple[int, int] = (0, 0)
    timestamp: float = field(default_factory=time.time)

    @property
    def has_targets(self) -> bool:
        return len(self.data) > 0

    @property
    def found_targets(self) -> List[VisionData]:
        return [d for d in self.data if d.found]
