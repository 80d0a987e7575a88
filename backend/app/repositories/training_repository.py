"""Training module, video and progress repository"""

from typing import List, Optional, Dict, Any, Sequence
from uuid import UUID
from sqlalchemy import select, delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.training import QuizResult, TrainingModule, Video, VideoProgress
from backend.app.models.base import utcnow
from backend.app.core.logging import get_logger

logger = get_logger(__name__)


class TrainingRepository:
    """Repository for training content and per-user progress"""

    def __init__(self, session: AsyncSession):
        self.session = session

    # Modules

    async def create_module(self, module_data: Dict[str, Any]) -> TrainingModule:
        module = TrainingModule(**module_data)
        self.session.add(module)
        await self.session.flush()
        logger.info(f"Created training module: {module.module}")
        return module

    async def get_module(self, module_id: UUID, refresh: bool = False) -> Optional[TrainingModule]:
        stmt = select(TrainingModule).where(TrainingModule.id == module_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_module_by_slug(self, slug: str) -> Optional[TrainingModule]:
        result = await self.session.execute(
            select(TrainingModule).where(TrainingModule.module == slug)
        )
        return result.scalar_one_or_none()

    async def list_modules(self, include_archived: bool = False) -> List[TrainingModule]:
        """Modules in display order"""
        stmt = select(TrainingModule)
        if not include_archived:
            stmt = stmt.where(TrainingModule.archived.is_(False))
        stmt = stmt.order_by(TrainingModule.position, TrainingModule.created_at)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def next_module_position(self) -> int:
        result = await self.session.execute(select(func.max(TrainingModule.position)))
        current = result.scalar()
        return 0 if current is None else current + 1

    async def update(self, entity, updates: Dict[str, Any]):
        for key, value in updates.items():
            setattr(entity, key, value)
        await self.session.flush()
        return entity

    async def delete(self, entity) -> None:
        await self.session.delete(entity)
        await self.session.flush()

    # Videos

    async def create_video(self, video_data: Dict[str, Any]) -> Video:
        video = Video(**video_data)
        self.session.add(video)
        await self.session.flush()
        logger.info(f"Created video {video.id} in module {video.module_id}")
        return video

    async def get_video(self, video_id: UUID) -> Optional[Video]:
        return await self.session.get(Video, video_id)

    async def next_video_position(self, module_id: UUID) -> int:
        result = await self.session.execute(
            select(func.max(Video.position)).where(Video.module_id == module_id)
        )
        current = result.scalar()
        return 0 if current is None else current + 1

    # Progress

    async def get_video_progress(self, user_id: UUID, video_id: UUID) -> Optional[VideoProgress]:
        result = await self.session.execute(
            select(VideoProgress).where(
                VideoProgress.user_id == user_id,
                VideoProgress.video_id == video_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_video_progress(
        self,
        user_id: UUID,
        video: Video,
        completed: bool,
        time_spent: int = 0,
    ) -> VideoProgress:
        """
        Record watch time for a video

        Time accumulates across calls. Once a video is completed it stays
        completed and keeps its first completion timestamp.
        """
        progress = await self.get_video_progress(user_id, video.id)
        if progress is None:
            progress = VideoProgress(
                user_id=user_id,
                video_id=video.id,
                module_id=video.module_id,
                completed=False,
                time_spent=0,
            )
            self.session.add(progress)

        progress.time_spent = (progress.time_spent or 0) + max(time_spent, 0)
        if completed and not progress.completed:
            progress.completed = True
            progress.completed_at = utcnow()

        await self.session.flush()
        return progress

    async def list_video_progress(
        self,
        user_ids: Sequence[UUID],
        module_ids: Optional[Sequence[UUID]] = None,
    ) -> List[VideoProgress]:
        if not user_ids:
            return []
        stmt = select(VideoProgress).where(VideoProgress.user_id.in_(list(user_ids)))
        if module_ids is not None:
            stmt = stmt.join(Video, Video.id == VideoProgress.video_id).where(
                Video.module_id.in_(list(module_ids))
            )

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def move_video_progress(self, video_id: UUID, module_id: UUID) -> None:
        """Point existing progress rows at the module a video now belongs to"""
        await self.session.execute(
            update(VideoProgress).where(VideoProgress.video_id == video_id).values(module_id=module_id)
        )

    async def completed_video_ids(self, user_id: UUID) -> List[UUID]:
        result = await self.session.execute(
            select(VideoProgress.video_id).where(
                VideoProgress.user_id == user_id,
                VideoProgress.completed.is_(True),
            )
        )
        return list(result.scalars().all())

    async def add_quiz_result(self, result_data: Dict[str, Any]) -> QuizResult:
        quiz_result = QuizResult(**result_data)
        self.session.add(quiz_result)
        await self.session.flush()
        return quiz_result

    async def list_quiz_results(
        self,
        user_ids: Sequence[UUID],
        module_ids: Optional[Sequence[UUID]] = None,
    ) -> List[QuizResult]:
        if not user_ids:
            return []
        stmt = select(QuizResult).where(QuizResult.user_id.in_(list(user_ids)))
        if module_ids is not None:
            stmt = stmt.where(QuizResult.module_id.in_(list(module_ids)))

        result = await self.session.execute(stmt.order_by(QuizResult.completed_at.desc()))
        return list(result.scalars().all())

    async def passed_module_ids(self, user_id: UUID) -> List[UUID]:
        result = await self.session.execute(
            select(QuizResult.module_id)
            .where(QuizResult.user_id == user_id, QuizResult.passed.is_(True))
            .distinct()
        )
        return list(result.scalars().all())

    async def clear_progress(self, user_id: UUID, module_ids: Sequence[UUID]) -> None:
        """Remove video progress and quiz results for the given modules"""
        if not module_ids:
            return
        ids = list(module_ids)
        await self.session.execute(
            delete(VideoProgress).where(
                VideoProgress.user_id == user_id,
                VideoProgress.video_id.in_(select(Video.id).where(Video.module_id.in_(ids))),
            )
        )
        await self.session.execute(
            delete(QuizResult).where(
                QuizResult.user_id == user_id,
                QuizResult.module_id.in_(ids),
            )
        )
        logger.info(f"Cleared training progress for user {user_id} on {len(ids)} modules")
