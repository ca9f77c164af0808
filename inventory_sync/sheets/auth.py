"""
Google Sheets service account authentication.

The sync runs unattended, so only server-to-server credentials are supported.
"""

from pathlib import Path
from typing import List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from inventory_sync.utils.errors import GatewayAuthenticationError
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)

# Google Sheets API scopes
SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
]


class ServiceAccountAuth:
    """Handle Google Sheets service account authentication."""

    def __init__(
        self,
        service_account_path: Path,
        scopes: Optional[List[str]] = None,
    ) -> None:
        """
        Initialize service account authentication.

        Args:
            service_account_path: Path to service account JSON key file
            scopes: OAuth2 scopes (defaults to SCOPES)

        Raises:
            GatewayAuthenticationError: If the key file does not exist
        """
        self.service_account_path = Path(service_account_path)
        self.scopes = scopes or SCOPES
        self._credentials: Optional[service_account.Credentials] = None

        if not self.service_account_path.exists():
            raise GatewayAuthenticationError(
                f"Service account file not found: {self.service_account_path}"
            )

    @property
    def credentials(self) -> Optional[service_account.Credentials]:
        """Get current credentials."""
        return self._credentials

    @property
    def is_authenticated(self) -> bool:
        return self._credentials is not None

    async def authenticate(self) -> service_account.Credentials:
        """
        Authenticate using the service account key.

        Returns:
            Valid credentials

        Raises:
            GatewayAuthenticationError: If authentication fails
        """
        try:
            self._credentials = service_account.Credentials.from_service_account_file(
                str(self.service_account_path),
                scopes=self.scopes,
            )
        except (GoogleAuthError, ValueError, OSError) as e:
            logger.error(f"Service account authentication failed: {e}")
            raise GatewayAuthenticationError(
                f"Service account authentication failed: {str(e)}",
                {"credentials_file": str(self.service_account_path)},
            )

        logger.info("Successfully authenticated with service account")
        return self._credentials
