import asyncio
import sys
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from studentdesk.core.database import Database


async def check(database_url: str = None) -> bool:
    """Test database connection using DATABASE_URL from the environment"""
    database = Database(url=database_url or os.getenv("DATABASE_URL"))
    try:
        await database.connect()
        await database.ping()
        print(f"Connection successful! ({database.engine.url.render_as_string(hide_password=True)})")
        return True
    except Exception as e:
        print(f"Connection failed: {e}")
        return False
    finally:
        await database.disconnect()


if __name__ == "__main__":
    ok = asyncio.run(check())
    sys.exit(0 if ok else 1)
