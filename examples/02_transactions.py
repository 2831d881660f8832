"""
Example 02: Transactions

This example demonstrates running several statements in one transaction,
automatic rollback on errors, and cancellation with a deadline.
"""

from dataclasses import dataclass

from row_tx import (
    ConnectionConfig,
    Context,
    DeadlineExceededError,
    IncompleteExecutionError,
    Query,
    insert_objects,
    open_database,
    select,
    with_write_tx,
)


@dataclass
class Account:
    id: int
    owner: str
    balance: float


def main():
    config = ConnectionConfig(driver="sqlite", database=":memory:")
    db = open_database(config)
    db.run("CREATE TABLE accounts (id INTEGER PRIMARY KEY, owner TEXT UNIQUE, balance REAL)")

    insert_objects(
        db,
        None,
        Query("INSERT INTO accounts (id, owner, balance) VALUES (?, ?, ?)"),
        [Account(1, "alice", 100.0), Account(2, "bob", 50.0)],
    )

    print("=== Transaction Management ===\n")

    # Example 1: Successful transaction
    print("1. Transfer in one transaction:")

    def transfer(ctx, tx):
        tx.execute("UPDATE accounts SET balance = balance - ? WHERE id = ?", (30.0, 1))
        tx.execute("UPDATE accounts SET balance = balance + ? WHERE id = ?", (30.0, 2))

    with_write_tx(db, None, transfer)
    accounts = select(db, None, Query("SELECT id, owner, balance FROM accounts"), Account)
    for account in accounts:
        print(f"   {account.owner}: {account.balance}")
    print()

    # Example 2: Bulk insert with a failing object
    print("2. Bulk insert with error (automatic rollback):")
    try:
        insert_objects(
            db,
            None,
            Query("INSERT INTO accounts (id, owner, balance) VALUES (?, ?, ?)"),
            [Account(3, "carol", 10.0), Account(4, "alice", 0.0)],
        )
    except IncompleteExecutionError as e:
        print(f"   Error occurred: {e}")
        print(f"   Executions before the failure: {e.results.executions}")
    count = len(select(db, None, Query("SELECT id, owner, balance FROM accounts"), Account))
    print(f"   Accounts after rollback: {count} (carol was not added)\n")

    # Example 3: Deadline
    print("3. Query cancelled by a deadline:")
    endless = Query(
        "WITH RECURSIVE n(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM n) "
        "SELECT count(*), '', 0 FROM n"
    )
    try:
        select(db, Context.background().with_timeout(0.2), endless, Account)
    except DeadlineExceededError as e:
        print(f"   {type(e).__name__}: {e}\n")

    db.close()


if __name__ == "__main__":
    main()
