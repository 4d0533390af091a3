from pathlib import Path
import dotenv
import os

from dataclasses import dataclass

from .sync.error_tracker import ConfigurationError


ROOT = Path(__file__).parent.parent

dotenv.load_dotenv(ROOT / '.env')


# Platform defaults
DEFAULT_AUTH_URL = 'https://auth.europe-west1.gcp.commercetools.com'
DEFAULT_API_URL = 'https://api.europe-west1.gcp.commercetools.com'

# Constants
PROJECT_ROLES = ['source', 'target']


@dataclass
class CtpProjectConfig:
    """Credentials and endpoints of one commercetools project"""
    project_key: str
    client_id: str
    client_secret: str
    auth_url: str = DEFAULT_AUTH_URL
    api_url: str = DEFAULT_API_URL
    scopes: str = ''
    timeout: int = 30

    def __post_init__(self):
        if not self.scopes:
            self.scopes = f'manage_project:{self.project_key}'

    @classmethod
    def from_environment(cls, role: str) -> 'CtpProjectConfig':
        """
        Create project configuration from environment variables.

        Args:
            role: Either 'source' or 'target'

        Returns:
            CtpProjectConfig instance

        Raises:
            ConfigurationError: If required environment variables are missing
        """
        if role not in PROJECT_ROLES:
            raise ConfigurationError(f"Unknown project role: {role}")
        prefix = role.upper()

        project_key = os.getenv(f'{prefix}_PROJECT_KEY')
        client_id = os.getenv(f'{prefix}_CLIENT_ID')
        client_secret = os.getenv(f'{prefix}_CLIENT_SECRET')

        missing_vars = []
        if not project_key:
            missing_vars.append(f'{prefix}_PROJECT_KEY')
        if not client_id:
            missing_vars.append(f'{prefix}_CLIENT_ID')
        if not client_secret:
            missing_vars.append(f'{prefix}_CLIENT_SECRET')

        if missing_vars:
            raise ConfigurationError(
                f"Missing required environment variables for the {role} project: {', '.join(missing_vars)}",
                recovery_suggestion="Set them in the environment or in the .env file at the repository root."
            )

        return cls(
            project_key=project_key,  # type: ignore - validated above
            client_id=client_id,  # type: ignore - validated above
            client_secret=client_secret,  # type: ignore - validated above
            auth_url=os.getenv(f'{prefix}_AUTH_URL') or DEFAULT_AUTH_URL,
            api_url=os.getenv(f'{prefix}_API_URL') or DEFAULT_API_URL,
            scopes=os.getenv(f'{prefix}_SCOPES') or '',
        )

