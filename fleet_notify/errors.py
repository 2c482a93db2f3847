"""
Exception hierarchy for the notification service.

Collaborator errors are recovered inside the notification service and never
reach HTTP callers; not-found errors map to 404.
"""


class FleetNotifyError(Exception):
    """Base class for all service errors"""
    pass


class NotificationNotFoundError(FleetNotifyError):
    """Raised when a notification id does not match any record"""

    def __init__(self, notification_id: str):
        super().__init__(f"Notification {notification_id} not found")
        self.notification_id = notification_id


class CollaboratorUnavailableError(FleetNotifyError):
    """A best-effort collaborator (realtime or push) cannot be used"""
    pass


class BroadcasterNotReadyError(CollaboratorUnavailableError):
    """Raised when emitting before the realtime broadcaster has started"""
    pass


class PushGatewayUnavailableError(CollaboratorUnavailableError):
    """Raised when the push gateway has no initialized Firebase app"""
    pass
