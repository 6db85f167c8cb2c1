from sqlalchemy.orm import declarative_base
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests). Python None is
# written as SQL NULL rather than the JSON literal null.
JSONDocument = JSON(none_as_null=True).with_variant(
    JSONB(none_as_null=True), "postgresql"
)
