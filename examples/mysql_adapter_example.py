"""
MySQL Adapter Example - 演示查询描述符到MySQL的完整流程
"""

import sys
import os
import logging
from datetime import datetime
from decimal import Decimal
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storage.clauses import build_select, build_update
from storage.exceptions import StorageEngineError
from storage.mysql_adapter import MySQLAdapter
from utils.models import FieldDescriptor, FieldKind, QueryBuilder, Schema


PRODUCT_SCHEMA = Schema("example_products", [
    FieldDescriptor("name", FieldKind.STRING),
    FieldDescriptor("price", FieldKind.DECIMAL),
    FieldDescriptor("available", FieldKind.BOOLEAN),
    FieldDescriptor("tags", FieldKind.LIST),
    FieldDescriptor("attributes", FieldKind.MAP),
    FieldDescriptor("created_at", FieldKind.DATETIME),
])


def show_compiled_sql():
    """展示编译后的SQL（不需要数据库连接）"""
    print("1. 编译查询")

    query = (QueryBuilder(PRODUCT_SCHEMA)
             .find({"price!gte": Decimal("10.00"),
                    "!or": [{"name!like": "lamp"}, {"available": True}]})
             .sort({"price": 0, "name": 1})
             .skip(20)
             .build())
    statement = build_select(query)
    print(f"   SQL:    {statement.sql}")
    print(f"   Params: {list(statement.params)}")

    update = (QueryBuilder(PRODUCT_SCHEMA)
              .find({"name": "desk lamp"})
              .set({"available": False})
              .build())
    statement = build_update(update)
    print(f"   SQL:    {statement.sql}")
    print(f"   Params: {list(statement.params)}\n")


def run_against_database():
    """对真实数据库执行插入、查询、更新与删除"""
    print("2. 数据库操作")

    with MySQLAdapter() as adapter:
        adapter.execute_query("DROP TABLE IF EXISTS example_products")
        adapter.execute_query("""
            CREATE TABLE example_products (
                id INT AUTO_INCREMENT PRIMARY KEY,
                name VARCHAR(100),
                price VARCHAR(32),
                available INT,
                tags TEXT,
                attributes TEXT,
                created_at DATETIME(6)
            )
        """)

        try:
            result = adapter.insert(
                QueryBuilder(PRODUCT_SCHEMA)
                .insert({"name": "desk lamp", "price": Decimal("24.90"), "available": True,
                         "tags": ["light", "office"], "attributes": {"watt": 9},
                         "created_at": datetime.now()})
                .insert({"name": "floor lamp", "price": "89.00", "available": False,
                         "tags": ["light"], "attributes": {"watt": 12},
                         "created_at": datetime.now()})
                .build(),
                lambda row: print(f"   inserted #{row['id']}: {row['name']}")
            )
            print(f"   affected: {result.affected}")

            adapter.begin()
            affected = adapter.update(QueryBuilder(PRODUCT_SCHEMA)
                                      .find({"name": "floor lamp"})
                                      .set({"available": True})
                                      .build())
            adapter.commit()
            print(f"   updated: {affected}")

            for row in adapter.load(QueryBuilder(PRODUCT_SCHEMA).sort({"price": 1}).build()):
                print(f"   {row['name']}: {row['price']} available={row['available']} "
                      f"tags={row['tags']} attributes={row['attributes']}")

            total = adapter.count(QueryBuilder(PRODUCT_SCHEMA).build())
            print(f"   count: {total}")
        finally:
            adapter.drop(QueryBuilder(PRODUCT_SCHEMA).build())


def main():
    """主演示函数"""
    logging.basicConfig(level=logging.INFO)
    print("=== MySQL Adapter 演示 ===\n")

    show_compiled_sql()

    try:
        run_against_database()
    except StorageEngineError as e:
        print(f"   数据库不可用，跳过: {e}")


if __name__ == "__main__":
    main()
