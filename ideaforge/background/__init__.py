# ideaforge/background/__init__.py
"""
Background job processing system.

Exports:
    - GenerationService: start/subscribe/get_snapshot control surface
    - JobNotifier / Subscription: polling progress subscriptions
    - ServiceLifecycle: Startup recovery and shutdown coordination
"""

from ideaforge.background.lifecycle import ServiceLifecycle
from ideaforge.background.notifier import JobNotifier, Subscription
from ideaforge.background.service import GenerationService

__all__ = ["GenerationService", "JobNotifier", "Subscription", "ServiceLifecycle"]
