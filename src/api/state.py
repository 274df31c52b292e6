from typing import Optional

from api.backend import CommandBackend

# Global instance built on first use (see dependencies.get_backend) or
# replaced outright by tests.
backend: Optional[CommandBackend] = None
