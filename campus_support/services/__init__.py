"""
Core services shared by every role's views.
`SupportServices` wires the repositories, lifecycle engine, notification relay,
reporting, availability and the video library around one injected store.
"""
from datetime import datetime
from typing import Callable
from fastapi import Depends
from campus_support.config import Settings, get_settings
from campus_support.database import get_store
from campus_support.database.store import NamespaceStore
from campus_support.services.aggregation import ReportingService
from campus_support.services.availability import AvailabilityTracker
from campus_support.services.lifecycle import LifecycleEngine
from campus_support.services.notifications import NotificationRelay
from campus_support.services.profiles import ProfileDirectory
from campus_support.services.repositories import (
    NotificationRepository, ProfileRepository, RatingRepository, ReportRepository, RequestRepository, VideoRepository,
)
from campus_support.services.videos import VideoLibrary
from campus_support.utilities import utcnow

class SupportServices:
    def __init__(self, store: NamespaceStore, settings: Settings = None, clock: Callable[[], datetime] = utcnow):
        settings = settings or get_settings()
        namespace = settings.namespace
        self.store = store

        # Repositories
        self.profiles = ProfileRepository(store, namespace)
        self.requests = RequestRepository(store, namespace)
        self.ratings = RatingRepository(store, namespace)
        self.reports = ReportRepository(store, namespace)
        self.notifications = NotificationRepository(store, namespace)
        self.videos = VideoRepository(store, namespace)

        # Services
        self.relay = NotificationRelay(self.notifications, settings.notification_max_entries, clock)
        self.lifecycle = LifecycleEngine(self.requests, self.profiles, self.reports, self.relay, clock)
        self.reporting = ReportingService(self.requests, self.ratings, self.profiles, settings.staleness_hours, clock)
        self.directory = ProfileDirectory(self.profiles, self.requests, clock)
        self.availability = AvailabilityTracker(self.profiles, self.reporting)
        self.library = VideoLibrary(self.videos, self.profiles, clock)

def get_services(store: NamespaceStore = Depends(get_store), settings: Settings = Depends(get_settings)) -> SupportServices:
    """Use this function as a dependency to get the services bound to the configured store."""
    return SupportServices(store, settings)
