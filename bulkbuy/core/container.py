from dataclasses import dataclass

from ..application.services.auth_service import AuthService
from ..application.services.comment_service import CommentService
from ..application.services.product_service import ProductService
from ..application.services.user_service import UserService
from ..domain.ports.mail import MailSender
from ..domain.ports.persistence import PersistenceGateway
from ..services.background import BackgroundTaskSink
from ..services.presence import ActivityTracker, PresenceSweeper
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    mailer: MailSender
    background: BackgroundTaskSink
    activity_tracker: ActivityTracker
    presence_sweeper: PresenceSweeper
    auth_service: AuthService
    product_service: ProductService
    comment_service: CommentService
    user_service: UserService
