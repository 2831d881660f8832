"""
Example 01: Basic CRUD

This example demonstrates inserting, selecting, updating and deleting records
with RowTx's CRUD operations against SQLite.
"""

from dataclasses import dataclass, field

from row_tx import (
    ConnectionConfig,
    Query,
    delete,
    insert_objects,
    open_database,
    select,
    select_one,
    update,
)


@dataclass
class User:
    """User record; the id field maps to the user_id column"""
    id: int = field(metadata={"dbfield": "user_id"})
    name: str
    email: str


def main():
    config = ConnectionConfig(driver="sqlite", database=":memory:")
    db = open_database(config)
    db.run("CREATE TABLE users (user_id INTEGER PRIMARY KEY, name TEXT, email TEXT)")

    print("=== Basic CRUD ===\n")

    # Insert several records in one transaction
    print("1. Insert users:")
    result = insert_objects(
        db,
        None,
        Query("INSERT INTO users (user_id, name, email) VALUES (?, ?, ?)"),
        [
            User(1, "Alice", "alice@example.com"),
            User(2, "Bob", "bob@example.com"),
            User(3, "Charlie", "charlie@example.com"),
        ],
    )
    print(f"   Executions: {result.executions}, rows affected: {result.rows_affected}\n")

    # Select all records
    print("2. Select all users:")
    for user in select(db, None, Query("SELECT user_id, name, email FROM users"), User):
        print(f"   - {user.name} ({user.email})")
    print()

    # Select a single record
    print("3. Select one user:")
    user = select_one(
        db, None, Query("SELECT user_id, name, email FROM users WHERE user_id = ?", 2), User
    )
    print(f"   Found: {user}\n")

    # Limit the number of rows read
    print("4. Select with limit:")
    query = Query("SELECT user_id, name, email FROM users ORDER BY user_id", limit=2)
    print(f"   First two: {[u.name for u in select(db, None, query, User)]}\n")

    # Update and delete
    print("5. Update and delete:")
    result = update(db, None, Query("UPDATE users SET email = ? WHERE user_id = ?", ("a@x.org", 1)))
    print(f"   Updated {result.rows_affected} row(s)")
    result = delete(db, None, Query("DELETE FROM users WHERE user_id = ?", 3))
    print(f"   Deleted {result.rows_affected} row(s)\n")

    db.close()


if __name__ == "__main__":
    main()
