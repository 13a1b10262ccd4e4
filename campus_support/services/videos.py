from typing import Callable, List
from datetime import datetime
from campus_support.errors import NotFound, ValidationError
from campus_support.logger import logger
from campus_support.models import Role, Video
from campus_support.services.repositories import ProfileRepository, VideoRepository
from campus_support.utilities import utcnow

class VideoLibrary:
    """
    A tutor's library of lesson video links (title, module, url, notes).
    Videos are listed newest first and removed by their owner or an admin.
    """

    def __init__(self, videos: VideoRepository, profiles: ProfileRepository, clock: Callable[[], datetime] = utcnow):
        self.videos = videos
        self.profiles = profiles
        self.clock = clock

    async def add(self, provider_id: str, data: dict) -> Video:
        provider = await self.profiles.get(provider_id)
        if provider.role != Role.TUTOR:
            raise ValidationError(f"{provider_id} is not a tutor")
        title = (data.get("title") or "").strip()
        url = (data.get("url") or "").strip()
        if not title or not url:
            raise ValidationError("A lesson video needs a title and a url")
        video = await self.videos.create({
            "provider_id": provider_id,
            "title": title,
            "module": data.get("module"),
            "url": url,
            "notes": data.get("notes"),
            "created_at": self.clock(),
        })
        logger.info(f"Video {video.id} added to the library of {provider_id}")
        return video

    async def list_for(self, provider_id: str, module: str = None) -> List[Video]:
        videos = await self.videos.for_provider(provider_id)
        if module:
            videos = [v for v in videos if (v.module or "").lower() == module.strip().lower()]
        videos.reverse()
        return videos

    async def remove(self, provider_id: str, video_id: str) -> Video:
        video = await self.videos.get(video_id)
        if video.provider_id != provider_id:
            raise NotFound("Video", video_id)
        removed = await self.videos.delete(video_id)
        logger.info(f"Video {video_id} removed from the library of {provider_id}")
        return removed
