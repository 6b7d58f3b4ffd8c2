"""
Example 01: Select and Get

This example demonstrates scanning query results into dataclasses, Pydantic
models, scalars and dicts using RowBind's DB wrapper.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from row_bind import DB, ConnectionConfig, NoRowsError, UnmappedColumnError, column


@dataclass
class Address:
    city: str = ""
    country: str = ""


@dataclass
class User:
    """User model using dataclass"""
    id: int = 0
    name: str = ""
    email: str | None = None
    address: Address = field(default_factory=Address)


class UserSummary(BaseModel):
    """User model using Pydantic"""
    user_id: int = Field(json_schema_extra={"db": "id"})
    name: str


@dataclass
class UserCity:
    name: str = ""
    city: str = column("address.city", default="")


def main():
    config = ConnectionConfig(driver="sqlite", database=":memory:")

    with DB.open(config) as db:
        db.execute("""
            CREATE TABLE users (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT,
                city TEXT,
                country TEXT
            )
        """)
        db.execute("INSERT INTO users VALUES (1, 'Alice', 'alice@example.com', 'Oslo', 'NO')")
        db.execute("INSERT INTO users VALUES (2, 'Bob', NULL, 'Lyon', 'FR')")

        print("=== Select and Get ===\n")

        # select: one value per row; nested fields use dotted column names
        users = db.select(
            User,
            'SELECT id, name, email, city AS "address.city", country AS "address.country" '
            "FROM users ORDER BY id",
        )
        print(f"select into dataclass ({len(users)} rows):")
        for user in users:
            print(f"  - {user}")
        print()

        # Pydantic models map through json_schema_extra
        summaries = db.select(UserSummary, "SELECT id, name FROM users ORDER BY id")
        print(f"select into Pydantic model: {summaries}\n")

        # Scalars need exactly one column
        count = db.get(int, "SELECT COUNT(*) FROM users")
        print(f"get scalar: {count} users")
        names = db.select(str, "SELECT name FROM users ORDER BY name")
        print(f"select scalars: {names}\n")

        # dict targets keep every column
        print(f"select dicts: {db.select(dict, 'SELECT id, city FROM users ORDER BY id')}\n")

        # Missing rows
        try:
            db.get(User, "SELECT id, name FROM users WHERE id = ?", 99)
        except NoRowsError as e:
            print(f"get on empty result: {e}")
        print(f"get_or_none: {db.get_or_none(User, 'SELECT id, name FROM users WHERE id = ?', 99)}\n")

        # Strict vs relaxed field matching
        sql = "SELECT id, name, country FROM users ORDER BY id"
        try:
            db.select(UserSummary, sql)
        except UnmappedColumnError as e:
            print(f"strict matching: {e}")
        relaxed = db.with_relaxed_field_matching()
        print(f"relaxed matching: {relaxed.select(UserSummary, sql)}\n")

        # Explicit column tags
        row = db.query_row('SELECT name, city AS "address.city" FROM users WHERE id = ?', 2)
        print(f"query_row with tagged column: {row.scan(UserCity)}")


if __name__ == "__main__":
    main()
