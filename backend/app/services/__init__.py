"""Business logic services"""

from backend.app.services.auth_service import AuthService
from backend.app.services.s3_service import S3Service
from backend.app.services.pipeline_service import PipelineService
from backend.app.services.training_service import TrainingService
from backend.app.services.assessment_service import AssessmentService
from backend.app.services.question_generator import QuestionGenerator

__all__ = [
    'AuthService',
    'S3Service',
    'PipelineService',
    'TrainingService',
    'AssessmentService',
    'QuestionGenerator',
]
