"""
Environment management and validation.
"""

import os
import sys
from enum import Enum
from typing import Dict, List


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class EnvironmentManager:
    """Manages environment variables and validation."""

    def __init__(self):
        self.env = self._detect_environment()
        self._required_vars = self._get_required_variables()
        self._validate_environment()

    def _detect_environment(self) -> Environment:
        """Detect current environment from ENVIRONMENT variable."""
        env_str = os.getenv("ENVIRONMENT", "development").lower()
        try:
            return Environment(env_str)
        except ValueError:
            return Environment.DEVELOPMENT

    def _get_required_variables(self) -> Dict[Environment, List[str]]:
        """Get required environment variables by environment."""
        return {
            Environment.DEVELOPMENT: [],
            Environment.STAGING: ["SECRET_KEY", "ENCRYPTION_KEY"],
            Environment.PRODUCTION: ["SECRET_KEY", "ENCRYPTION_KEY"],
            Environment.TESTING: [],
        }

    def _validate_environment(self) -> None:
        """Validate that required environment variables are set."""
        required = self._required_vars.get(self.env, [])
        missing = [var for var in required if not os.getenv(var)]

        if missing:
            raise EnvironmentError(
                f"Missing required environment variables for {self.env.value}: {', '.join(missing)}"
            )

    def is_testing(self) -> bool:
        """Check if running under tests (explicit env or a pytest process)."""
        return self.env == Environment.TESTING or "pytest" in sys.modules
