"""Build-file parsers — auto-registered on import."""

from unidep.engines.dependency_scanner.parsers import (
    gradle_build,  # noqa: F401
    gradle_kts,  # noqa: F401
    maven_pom,  # noqa: F401
)
