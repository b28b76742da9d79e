"""
Initialize the MySQL database used by the adapter integration tests.
"""
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pymysql
from config.settings import config
from storage.criteria import quote_identifier


def create_test_database():
    """Create the configured database if it does not exist."""

    # Connect to MySQL server (without specifying database)
    connection = pymysql.connect(
        host=config.database_config.host,
        port=config.database_config.port,
        user=config.database_config.username,
        password=config.database_config.password,
        charset=config.database_config.charset
    )

    try:
        cursor = connection.cursor()
        database = quote_identifier(config.database_config.database)

        cursor.execute(
            f"CREATE DATABASE IF NOT EXISTS {database} "
            f"CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        cursor.execute(f"USE {database}")

        print(f"Created/Using database: {config.database_config.database}")

        cursor.execute("SHOW TABLES")
        tables = [row[0] for row in cursor.fetchall()]
        if tables:
            print(f"Existing tables: {', '.join(tables)}")

        cursor.close()
        connection.commit()

    finally:
        connection.close()


if __name__ == "__main__":
    try:
        create_test_database()
        print("\n🎉 Database initialization completed!")
    except pymysql.Error as e:
        print(f"✗ Database initialization failed: {e}")
        sys.exit(1)
