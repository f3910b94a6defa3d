"""
Typed Exception Hierarchy for the Portfolio Kernel.

===============================================================================
SCOPE
===============================================================================

Integrity violations, quality findings and zero-denominator ratios are NOT
exceptions in this system.  The checkers collect them as records and the
aggregation engine returns ``None`` for undefined ratios.  Exceptions are
reserved for the surrounding layers: loading a snapshot, parsing source
files, reading configuration, and wiring the database.

Every exception has:
  1. A TYPED class (catch by type, not message)
  2. A ``code`` class attribute (machine-readable)
  3. Structured attributes carrying the context

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PortfolioReportingError (base)
    |
    +-- SnapshotError
    |   +-- UnknownEntityError
    |
    +-- IngestionError
    |   +-- RecordParseError
    |   +-- SourceFormatError
    |
    +-- ConfigurationError
    |   +-- InvalidThresholdError
    |
    +-- DatabaseNotInitializedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Snapshot        | UNKNOWN_ENTITY              | Entity/table name not in the data model
----------------|-----------------------------|-----------------------------------------
Ingestion       | RECORD_PARSE_ERROR          | Field value cannot be coerced to its type
                | SOURCE_FORMAT_ERROR         | Source file unreadable or unsupported
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_THRESHOLD           | Threshold is zero, negative or non-numeric
                | CONFIGURATION_ERROR         | Config file missing keys or malformed
----------------|-----------------------------|-----------------------------------------
Database        | DATABASE_NOT_INITIALIZED    | Session requested before engine init

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        result = load_directory(path)
    except SourceFormatError as e:
        print(f"Cannot read {e.source}: {e.reason}")

RecordParseError is normally caught inside ``SnapshotBuilder`` and turned
into a ``RejectedRecord``; it only escapes when a caller parses a single
record directly.
"""


class PortfolioReportingError(Exception):
    """
    Base exception for all portfolio reporting errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "PORTFOLIO_ERROR"


# Snapshot exceptions


class SnapshotError(PortfolioReportingError):
    """Base exception for entity snapshot errors."""

    code: str = "SNAPSHOT_ERROR"


class UnknownEntityError(SnapshotError):
    """Entity or table name is not part of the data model."""

    code: str = "UNKNOWN_ENTITY"

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"Unknown entity: {entity}")


# Ingestion exceptions


class IngestionError(PortfolioReportingError):
    """Base exception for source loading errors."""

    code: str = "INGESTION_ERROR"


class RecordParseError(IngestionError):
    """A field value cannot be coerced to its declared type."""

    code: str = "RECORD_PARSE_ERROR"

    def __init__(self, entity: str, field: str, value: object, reason: str):
        self.entity = entity
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(
            f"Cannot parse {entity}.{field} from {value!r}: {reason}"
        )


class SourceFormatError(IngestionError):
    """Source file cannot be read or has an unsupported format."""

    code: str = "SOURCE_FORMAT_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot read source {source}: {reason}")


# Configuration exceptions


class ConfigurationError(PortfolioReportingError):
    """Configuration file or values are invalid."""

    code: str = "CONFIGURATION_ERROR"


class InvalidThresholdError(ConfigurationError):
    """A reporting threshold is zero, negative, or not a number."""

    code: str = "INVALID_THRESHOLD"

    def __init__(self, name: str, value: object):
        self.name = name
        self.value = value
        super().__init__(f"Threshold {name} must be a positive number, got {value!r}")


# Database exceptions


class DatabaseNotInitializedError(PortfolioReportingError):
    """Engine or session requested before ``init_engine_from_url()``."""

    code: str = "DATABASE_NOT_INITIALIZED"

    def __init__(self) -> None:
        super().__init__("Engine not initialized. Call init_engine_from_url() first.")
