from sqlmodel import SQLModel


# Generic result of an indexing command
class OperationResult(SQLModel):
    result: bool = True
    error: str | None = None
