from psycopg2.extras import RealDictCursor


class BaseRepository:
    """
    Base repository providing DB helpers over a connection that belongs to
    the caller's unit of work. Repositories never commit.

    Guarantees:
    - fetchall() returns List[Dict]
    - fetchone() returns Dict | None
    """

    def __init__(self, conn):
        self._conn = conn

    def execute(self, query: str, params: tuple | None = None):
        cur = self._conn.cursor(cursor_factory=RealDictCursor)
        cur.execute(query, params or ())
        return cur

    def fetchall(self, query: str, params: tuple | None = None):
        cur = self.execute(query, params)
        rows = cur.fetchall()
        cur.close()
        return rows

    def fetchone(self, query: str, params: tuple | None = None):
        cur = self.execute(query, params)
        row = cur.fetchone()
        cur.close()
        return row

    def run(self, query: str, params: tuple | None = None) -> int:
        cur = self.execute(query, params)
        count = cur.rowcount
        cur.close()
        return count
