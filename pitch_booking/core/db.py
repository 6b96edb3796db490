import psycopg2
from psycopg2.extras import RealDictCursor

from pitch_booking.core.config import Settings


def get_connection(settings: Settings, autocommit: bool = True):
    conn = psycopg2.connect(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_name,
        user=settings.db_user,
        password=settings.db_password,
        cursor_factory=RealDictCursor,
        options='-c timezone=utc'
    )
    # Transactions that lock the document row turn this off
    conn.autocommit = autocommit
    return conn
