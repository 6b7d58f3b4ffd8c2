"""
Example 02: Insert and Transactions

This example demonstrates marshaling values into insert statements,
omitempty handling and transaction management.
"""

from dataclasses import dataclass

from row_bind import DB, ConnectionConfig, MapOptions, column, map_to_columns


class Cents:
    """Money amount stored as an integer number of cents"""

    def __init__(self, value: int = 0):
        self.value = value

    @classmethod
    def from_db(cls, value):
        return cls(int(value))

    def to_db(self):
        return self.value

    def is_zero(self):
        return self.value == 0

    def __repr__(self):
        return f"Cents({self.value})"


@dataclass
class Product:
    id: int = column("id", omitempty=True, default=0)
    name: str = ""
    price: Cents = column("price", omitempty=True, default_factory=Cents)
    note: str | None = column("note", omitempty=True, default=None)


def main():
    config = ConnectionConfig(driver="sqlite", database=":memory:")

    with DB.open(config) as db:
        db.execute("""
            CREATE TABLE product (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                price INTEGER NOT NULL DEFAULT 0,
                note TEXT
            )
        """)

        print("=== Marshaling ===\n")

        widget = Product(name="Widget", price=Cents(1999))
        print(f"map_to_columns: {map_to_columns(widget)}")
        print(f"with include_zeroed: {map_to_columns(Product(name='Free'), MapOptions(include_zeroed=True))}\n")

        # insert derives the table name from the class name
        result = db.insert(widget)
        print(f"insert id: {result.last_insert_id()}")
        db.insert(Product(name="Gadget", price=Cents(500), note="new"))
        db.insert_table("product", {"name": "Sample"})

        for product in db.select(Product, "SELECT * FROM product ORDER BY id"):
            print(f"  - {product}")
        print()

        print("=== Transactions ===\n")

        # Successful transaction - auto-commits
        with db.begin() as tx:
            tx.execute("UPDATE product SET price = price + ? WHERE name = ?", 1, "Widget")
        print(f"after commit: {db.get(Cents, 'SELECT price FROM product WHERE name = ?', 'Widget')}")

        # Failed transaction - auto-rolls back
        try:
            with db.begin() as tx:
                tx.execute("DELETE FROM product")
                raise ValueError("Simulated error")
        except ValueError:
            pass
        print(f"after rollback: {db.get(int, 'SELECT COUNT(*) FROM product')} products")

        # Prepared statements run inside a transaction with tx.stmt
        rename = db.prepare("UPDATE product SET name = ? WHERE id = ?")
        tx = db.begin()
        tx.stmt(rename).execute("Widget Pro", 1)
        tx.commit()
        print(f"renamed: {db.get(str, 'SELECT name FROM product WHERE id = 1')}")


if __name__ == "__main__":
    main()
