"""
Result Publishers
=================

Send VisionMessages to the robot. The loop calls send() once per frame
and does not interpret its return value.
"""

import logging
import socket
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from field_target_vision.detectors.base import VisionMessage, encode_messages

logger = logging.getLogger(__name__)


class DataSenderBase(ABC):
    """Abstract base class for result publishers."""

    def __init__(self):
        self._sent_count = 0

    @property
    def sent_count(self) -> int:
        return self._sent_count

    @abstractmethod
    def send(self, messages: List[VisionMessage]) -> bool:
        """
        Publish one batch of messages.

        Returns:
            True if the batch was handed to the transport
        """
        pass

    def close(self) -> None:
        """Release transport resources."""
        pass


class UdpDataSender(DataSenderBase):
    """
    Sends each batch as one JSON datagram.

    Args:
        host: Destination address
        port: Destination port
    """

    def __init__(self, host: str = "10.8.62.2", port: int = 5801):
        super().__init__()
        self.host = host
        self.port = int(port)
        self._sock: Optional[socket.socket] = None

    def _ensure_socket(self) -> socket.socket:
        if self._sock is None:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        return self._sock

    def send(self, messages: List[VisionMessage]) -> bool:
        payload = encode_messages(messages)
        try:
            self._ensure_socket().sendto(payload, (self.host, self.port))
        except OSError as e:
            logger.debug(f"Send to {self.host}:{self.port} failed: {e}")
            return False

        self._sent_count += 1
        return True

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None


class MockDataSender(DataSenderBase):
    """Keeps sent messages in memory for testing."""

    def __init__(self, max_history: int = 1000):
        super().__init__()
        self.max_history = max_history
        self._messages: List[VisionMessage] = []
        self._lock = threading.Lock()

    def send(self, messages: List[VisionMessage]) -> bool:
        with self._lock:
            self._messages.extend(messages)
            if len(self._messages) > self.max_history:
                self._messages = self._messages[-self.max_history:]
            self._sent_count += 1
        return True

    @property
    def messages(self) -> List[VisionMessage]:
        with self._lock:
            return list(self._messages)

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()


def create_data_sender(config: Optional[object] = None, use_mock: bool = False) -> DataSenderBase:
    """
    Factory function to create a publisher.

    Args:
        config: Configuration object (network section)
        use_mock: Record messages instead of sending them
    """
    if use_mock:
        return MockDataSender()

    if config is None:
        return UdpDataSender()

    logger.info(f"Publishing results to {config.network.host}:{config.network.data_port}")
    return UdpDataSender(host=config.network.host, port=config.network.data_port)
