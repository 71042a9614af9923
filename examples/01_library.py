"""
Example 01: Mapping a Small Library

This example demonstrates mappers, eager relationship loading, and
dirty-tracked writes using row_mapper's MapperContainer.
"""

import sqlite3
import tempfile

from row_mapper import ConnectionConfig, Mapper, MapperContainer, TableMetadata


class AuthorMapper(Mapper):
    table = TableMetadata(
        name="authors",
        columns=("author_id", "name"),
        primary_key=("author_id",),
        autoincrement=True,
    )

    def define_relations(self):
        self.one_to_many("books", BookMapper)


class BookMapper(Mapper):
    table = TableMetadata(
        name="books",
        columns=("book_id", "author_id", "title"),
        primary_key=("book_id",),
        autoincrement=True,
    )

    def define_relations(self):
        self.many_to_one("author", AuthorMapper)


def main():
    # Create a temporary database
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    conn = sqlite3.connect(db_path)
    conn.execute(
        "CREATE TABLE authors (author_id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)"
    )
    conn.execute("""
        CREATE TABLE books (
            book_id INTEGER PRIMARY KEY AUTOINCREMENT,
            author_id INTEGER NOT NULL,
            title TEXT NOT NULL
        )
    """)
    conn.execute("INSERT INTO authors (name) VALUES ('Alice'), ('Bob')")
    conn.execute(
        "INSERT INTO books (author_id, title) VALUES "
        "(1, 'First Steps'), (1, 'Second Thoughts'), (2, 'Only Book')"
    )
    conn.commit()
    conn.close()

    config = ConnectionConfig(driver="sqlite", database=db_path, pool_size=1)
    container = MapperContainer.from_config(config)
    container.set_mappers(AuthorMapper, BookMapper)

    authors = container.mapper(AuthorMapper)
    books = container.mapper(BookMapper)

    print("=== Eager Loading ===\n")

    # Two queries: one for authors, one for all of their books
    for author in authors.fetch_record_set([1, 2], "books"):
        print(f"{author.name}: {author.books.get_col('title')}")

    # Both books point at the same author record
    first, second = books.fetch_record_set([1, 2], "author")
    print(f"\nShared author record: {first.author is second.author}\n")

    print("=== Writing ===\n")

    book = books.new_record({"author_id": 2, "title": "Sequel"})
    books.insert(book)
    print(f"Inserted book_id: {book.book_id}")

    book.title = "The Sequel"
    print(f"Changed columns: {books.gateway.get_array_diff(book.get_row())}")
    books.update(book)
    print(f"Status after update: {book.get_status().value}")

    books.delete(book)
    print(f"Status after delete: {book.get_status().value}")


if __name__ == "__main__":
    main()
