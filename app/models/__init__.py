from .user import User
from .team import Team, TeamMember
from .project import Project, ProjectHistory
from .provider import Provider, GitHubRepo
from .notification import Notification

# додай тут всі свої моделі!
