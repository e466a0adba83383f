"""Engine configuration.

EngineConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Engine configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = EngineConfig(max_page_size=25, observe_requests=False)
    """

    # Key conventions
    default_scan_prefix: str = "j:"  # Property scan scope when no route scans
    precondition_key_prefix: str = "j:"  # Prepended to the first path variable for req(...)

    # Optimization advisor
    suggested_page_limit: int = 50
    max_page_size: int = 50

    # Observation pass (property check + advisor) after each request
    observe_requests: bool = True
    check_properties: bool = True
    suggest_optimizations: bool = True

    # Diagnostics
    debug: bool = False
