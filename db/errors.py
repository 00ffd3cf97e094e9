class StoreError(Exception):
    """Base class for errors raised by a timelearn store."""


class StoreExistsError(StoreError):
    def __init__(self, path):
        super().__init__(f"Store already exists at {path}")
        self.path = path


class SchemaError(StoreError):
    """The file is a database, but not one we understand."""


class MissingSchemaError(SchemaError):
    pass


class SchemaVersionError(SchemaError):
    def __init__(self, found: str, expected: str):
        super().__init__(
            f"Schema version mismatch, database is {found!r}, expecting {expected!r}"
        )
        self.found = found
        self.expected = expected


class IntegrityViolation(StoreError):
    """A write was rejected by a storage constraint."""


class DuplicateQuestionError(IntegrityViolation):
    def __init__(self, question: str):
        super().__init__(f"Question already present: {question!r}")
        self.question = question


class UnknownItemError(IntegrityViolation):
    def __init__(self, item_id: int):
        super().__init__(f"No item with id {item_id}")
        self.item_id = item_id


class PopulationError(StoreError):
    """Populator used outside its valid sequence of calls."""


class InvalidFactorError(ValueError):
    def __init__(self, factor):
        super().__init__(f"Invalid factor {factor!r}, should be 1-4")
        self.factor = factor
