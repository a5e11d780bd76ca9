"""Notification list reconciliation."""
from foodswipe.services.notifications.reconciler import NotificationReconciler

__all__ = ["NotificationReconciler"]
