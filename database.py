import logging
import sqlite3
import threading

Log = logging.getLogger(__name__)


class ADatabase():
    def __init__(self, path : str, name : str):
        self._name : str = name
        self._path : str = path

    def IsOpened(self) -> bool:
        pass

    def Open(self) -> bool:
        pass

    def Close(self):
        pass

    def ExecuteQuery(self, query : str, params : tuple = (), withResponse = False) -> list[tuple] | int:
        pass

    def ExecuteMany(self, query : str, rows : list[tuple]) -> int:
        pass

    def TableExists(self, table : str) -> bool:
        pass

    def GetName(self) -> str:
        return self._name

    def GetPath(self) -> str:
        return self._path


# One connection shared between the main loop and plugin threads, serialized by a lock.
class DatabaseLite(ADatabase):
    def __init__(self, path : str, name : str):
        super().__init__(path, name)
        self._connection = None
        self._lock = threading.RLock()

    def IsOpened(self) -> bool:
        return self._connection != None

    def Open(self) -> bool:
        if self.IsOpened():
            self.Close()
        self._connection = sqlite3.connect(self._path, check_same_thread = False)
        if self.IsOpened():
            Log.debug("Opened database %s at %s", self._name, self._path)
            return True
        else:
            return False

    def Close(self):
        with self._lock:
            if self.IsOpened():
                self._connection.close()
                self._connection = None

    def ExecuteQuery(self, query : str, params : tuple = (), withResponse = False) -> list[tuple] | int:
        """Runs a single statement, returns fetched rows when withResponse is set, affected row count otherwise."""
        if not self.IsOpened():
            raise sqlite3.ProgrammingError("Database %s is not opened" % self._name)
        with self._lock:
            cursor = self._connection.cursor()
            try:
                cursor.execute(query, params)
                self._connection.commit()
                if withResponse:
                    return cursor.fetchall()
                return cursor.rowcount
            except sqlite3.Error:
                self._connection.rollback()
                raise
            finally:
                cursor.close()

    def ExecuteMany(self, query : str, rows : list[tuple]) -> int:
        """
        Executes the query once per row inside a single transaction.
        Either every row is written or none is.

        :return: number of rows written
        """
        if not self.IsOpened():
            raise sqlite3.ProgrammingError("Database %s is not opened" % self._name)
        with self._lock:
            try:
                with self._connection:
                    self._connection.executemany(query, rows)
            except sqlite3.Error:
                Log.error("Bulk write of %d rows into %s failed", len(rows), self._name)
                raise
        return len(rows)

    def TableExists(self, table : str) -> bool:
        rows = self.ExecuteQuery("SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (table,), withResponse = True)
        return len(rows) > 0


class DatabaseManager():

    DBM_RESULT_ERROR = -2
    DBM_RESULT_ALREADY_EXISTS = -1
    DBM_RESULT_OK = 0

    def __init__(self):
        self._databases : dict[str, ADatabase] = {}

    def CloseAll(self):
        for k in self._databases:
            self._databases[k].Close()

    def GetDatabase(self, name : str) -> ADatabase:
        if name in self._databases:
            return self._databases[name]
        else:
            return None

    def AddDatabase(self, db : ADatabase) -> int:
        if self.GetDatabase(db.GetName()) != None:
            return DatabaseManager.DBM_RESULT_ALREADY_EXISTS
        else:
            self._databases[db.GetName()] = db
            return DatabaseManager.DBM_RESULT_OK

    def CreateDatabase(self, path : str, name : str) -> int:
        """
        Creates a database
        Created databases will keep their connections opened

        :param path: A path to database, ":memory:" for a transient one
        :param name: A name of database for internal storage and referencing, used in searching

        :return: DBM_RESULT_OK | DBM_RESULT_ALREADY_EXISTS | DBM_RESULT_ERROR
        """
        if self.GetDatabase(name) != None:
            return DatabaseManager.DBM_RESULT_ALREADY_EXISTS
        else:
            newdb = DatabaseLite(path, name)
            try:
                opened = newdb.Open()
            except sqlite3.Error as e:
                Log.error("Unable to open database %s at %s : %s", name, path, e)
                return DatabaseManager.DBM_RESULT_ERROR
            if opened:
                self.AddDatabase(newdb)
            else:
                return DatabaseManager.DBM_RESULT_ERROR
            return DatabaseManager.DBM_RESULT_OK
