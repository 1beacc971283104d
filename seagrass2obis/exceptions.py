"""Exception hierarchy for seagrass2obis."""


class Seagrass2ObisError(Exception):
    """Base error for the seagrass2obis package."""


class ConfigError(Seagrass2ObisError):
    """Raised when the YAML configuration is missing or incomplete."""

    def __init__(self, path, message):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class DataIntegrityError(Seagrass2ObisError, ValueError):
    """Raised when a survey table cannot be normalized.

    Dates and transect distances feed the eventID, so a value that does not
    parse aborts the run rather than being skipped.
    """

    def __init__(self, table, column, message, rows=None):
        self.table = table
        self.column = column
        self.rows = list(rows) if rows is not None else []
        location = f"{table}.{column}"
        if self.rows:
            shown = ', '.join(str(r) for r in self.rows[:10])
            more = f" (+{len(self.rows) - 10} more)" if len(self.rows) > 10 else ''
            location += f" rows [{shown}{more}]"
        super().__init__(f"{location}: {message}")


class TaxonLookupError(Seagrass2ObisError, LookupError):
    """Raised when the WoRMS record for the surveyed taxon cannot be fetched."""
