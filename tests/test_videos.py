"""
Tests for the tutor lesson-video library
"""
import pytest

from campus_support.errors import NotFound, ValidationError

pytestmark = pytest.mark.asyncio


async def add(services, provider_id, title, module=None):
    return await services.library.add(provider_id, {"title": title, "module": module, "url": f"https://youtu.be/{title.lower()}"})


class TestVideoLibrary:
    """Test adding, listing and removing lesson videos"""

    async def test_newest_first(self, services, people, clock):
        first = await add(services, people.tutor.id, "Elasticity", "ECO101")
        clock.advance(minutes=5)
        second = await add(services, people.tutor.id, "Derivatives", "MTH101")
        assert first.created_at < second.created_at
        assert first.id.startswith("vid-")

        videos = await services.library.list_for(people.tutor.id)
        assert [v.id for v in videos] == [second.id, first.id]

    async def test_module_filter_ignores_case(self, services, people):
        await add(services, people.tutor.id, "Elasticity", "ECO101")
        await add(services, people.tutor.id, "Derivatives", "MTH101")
        videos = await services.library.list_for(people.tutor.id, module=" eco101")
        assert [v.title for v in videos] == ["Elasticity"]

    async def test_libraries_are_per_tutor(self, services, people):
        await add(services, people.tutor.id, "Elasticity")
        assert await services.library.list_for(people.counsellor.id) == []

    async def test_only_tutors_have_libraries(self, services, people):
        with pytest.raises(ValidationError):
            await add(services, people.counsellor.id, "Breathing exercises")

    async def test_title_and_url_required(self, services, people):
        with pytest.raises(ValidationError):
            await services.library.add(people.tutor.id, {"title": "  ", "url": "https://youtu.be/x"})
        with pytest.raises(ValidationError):
            await services.library.add(people.tutor.id, {"title": "Elasticity"})

    async def test_unknown_provider(self, services):
        with pytest.raises(NotFound):
            await add(services, "tutor-ghost", "Elasticity")

    async def test_remove_own_video(self, services, people):
        video = await add(services, people.tutor.id, "Elasticity")
        removed = await services.library.remove(people.tutor.id, video.id)
        assert removed.id == video.id
        assert await services.library.list_for(people.tutor.id) == []

    async def test_cannot_remove_through_another_provider(self, services, people):
        video = await add(services, people.tutor.id, "Elasticity")
        with pytest.raises(NotFound):
            await services.library.remove(people.counsellor.id, video.id)
        assert len(await services.library.list_for(people.tutor.id)) == 1
