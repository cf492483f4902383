import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER", "postgres")
password = os.getenv("DB_PASSWORD", "")
host = os.getenv("DB_HOST", "localhost")
port = os.getenv("DB_PORT", "5432")
db_name = os.getenv("DB_NAME", "creature_server")
# Full URL override, e.g. sqlite+aiosqlite:///./creature_server.sqlite3 for local runs.
database_url = os.getenv("DATABASE_URL")
pepper_data = os.getenv("PEPPER_DATA", "")
redis_host = os.getenv("REDIS_HOST", "redis")
redis_port = int(os.getenv("REDIS_PORT", "6379"))
log_level = os.getenv("LOG_LEVEL", "INFO").upper()

if __name__ == "__main__":
    print(user, host, port, db_name, database_url, redis_host, redis_port, log_level)
