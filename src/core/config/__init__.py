"""
Configuration subsystem for Gildhall Economy.

Architecture
------------
- **config.py**: Static configuration from environment variables (.env support)
- **manager.py**: Game tunables from YAML with dot-notation access

Static vs Dynamic Configuration
--------------------------------
**Static (Config):**
- Loaded from environment variables at startup
- Includes: database URL, pool sizes, statement timeout, logging
- Changes require a restart

**Tunables (ConfigManager):**
- Loaded from YAML files in ``config/`` over built-in defaults
- Includes: trade window, auction bounds, gold ceiling, sweep cadence
- Runtime overrides via ``ConfigManager.set``

Usage
-----
```python
from src.core.config import Config, ConfigManager

db_url = Config.DATABASE_URL
window = ConfigManager.get("trade.expiry_minutes", 30)
```
"""

from src.core.config.config import Config, Environment
from src.core.config.manager import (
    ConfigInitializationError,
    ConfigManager,
    ConfigManagerError,
)

__all__ = [
    "Config",
    "Environment",
    "ConfigManager",
    "ConfigManagerError",
    "ConfigInitializationError",
]
