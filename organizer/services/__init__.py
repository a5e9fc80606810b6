from organizer.services.events import EventService
from organizer.services.notes import NoteService
from organizer.services.projects import ProjectService
from organizer.services.tasks import TaskService
from organizer.services.users import UserService

__all__ = ["EventService", "NoteService", "ProjectService", "TaskService", "UserService"]
