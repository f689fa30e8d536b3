"""unidep — dependency index and minimal-diff editor for Gradle and Maven builds."""

__version__ = "0.1.0"
