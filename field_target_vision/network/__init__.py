"""
Network Module
==============

Result publishers (UDP JSON, mock).
"""

from .data_sender import DataSenderBase, UdpDataSender, MockDataSender, create_data_sender

__all__ = [
    'DataSenderBase',
    'UdpDataSender',
    'MockDataSender',
    'create_data_sender',
]
