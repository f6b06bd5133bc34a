import os
import sys

import psycopg2
from dotenv import load_dotenv

SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "backend", "app", "core", "schema.sql")


def run_migrations() -> int:
    """
    执行 backend/app/core/schema.sql（幂等：全部使用 IF NOT EXISTS / CREATE OR REPLACE）

    中文注释: 连接串通过 DATABASE_URL 注入，不在仓库中保存任何数据库凭证。
    """
    load_dotenv()
    dsn = (os.environ.get("DATABASE_URL") or "").strip()
    if not dsn:
        print("❌ DATABASE_URL is not set")
        return 1

    print("🚀 Connecting to database...")
    try:
        conn = psycopg2.connect(dsn, connect_timeout=10)
    except psycopg2.Error as e:
        print(f"❌ Connection failed: {e}")
        return 1

    try:
        conn.autocommit = True
        with conn.cursor() as cur:
            print(f"📄 Reading {SCHEMA_PATH}...")
            with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
                schema_sql = f.read()

            print("⚡ Executing migrations...")
            cur.execute(schema_sql)
        print("✅ Database migration completed successfully!")
        return 0
    except psycopg2.Error as e:
        print(f"❌ Migration failed: {e}")
        return 1
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(run_migrations())
