"""Notification gateway and delivery channels."""

from recitation.notifications.channels import NotificationChannel
from recitation.notifications.gateway import (
    LocalNotificationGateway,
    NotificationGateway,
    ScheduledNotification,
)
from recitation.notifications.log_channel import LogChannel

__all__ = [
    "LocalNotificationGateway",
    "LogChannel",
    "NotificationChannel",
    "NotificationGateway",
    "ScheduledNotification",
]
