import logging
import math
from dataclasses import dataclass
from datetime import date

import database
import lib.shared.util as util

Log = logging.getLogger(__name__)

PLAYTIME_TABLE = "PlaytimeTracker_Playtime"
LEGACY_PLAYER_TABLE = "PlayerTracker_Player"
LEGACY_PLAYTIME_TABLE = "PlayerTracker_Playtime"

FIELD_PLAYED = "minutesPlayed"
FIELD_SEEDED = "minutesSeeded"
COUNTER_FIELDS = (FIELD_PLAYED, FIELD_SEEDED)

MAX_RATIO = 999.9
RATIO_PLACEHOLDER = "-"


@dataclass
class PlaytimeRecord:
    steamID : str
    date : str
    minutesPlayed : int = 0
    minutesSeeded : int = 0
    clanTag : str = None


@dataclass
class ClanAggregate:
    clanTag : str
    played : int
    seeded : int
    ratio : float


def DateKey(day : date) -> str:
    return day.isoformat()


class PlaytimeRepository():
    """
    Per player per day playtime counters stored in a relational table keyed by (steamID, date).
    Every method is a single statement or transaction against the database, so a failure on one
    row never leaves another row half written.
    """
    def __init__(self, db : database.ADatabase):
        self._db = db

    def GetDatabase(self) -> database.ADatabase:
        return self._db

    def CreateTables(self):
        self._db.ExecuteQuery(f"""CREATE TABLE IF NOT EXISTS {PLAYTIME_TABLE} (
                                steamID VARCHAR(255) NOT NULL,
                                date DATE NOT NULL,
                                minutesPlayed INTEGER DEFAULT 0,
                                minutesSeeded INTEGER DEFAULT 0,
                                clanTag VARCHAR(255),
                                PRIMARY KEY (steamID, date)
                                );""")

    def FindOrCreate(self, steamID : str, day : date, clanTag : str = None) -> tuple[PlaytimeRecord, bool]:
        """
        Returns the row for the player and day, creating it with zeroed counters when missing.
        The clan tag is only written on creation.

        :return: (record, created)
        """
        dateKey = DateKey(day)
        inserted = self._db.ExecuteQuery(f"INSERT OR IGNORE INTO {PLAYTIME_TABLE} (steamID, date, minutesPlayed, minutesSeeded, clanTag) VALUES (?, ?, 0, 0, ?)",
                                         (steamID, dateKey, clanTag))
        rows = self._db.ExecuteQuery(f"SELECT steamID, date, minutesPlayed, minutesSeeded, clanTag FROM {PLAYTIME_TABLE} WHERE steamID = ? AND date = ?",
                                     (steamID, dateKey), withResponse = True)
        return PlaytimeRecord(*rows[0]), inserted > 0

    def Increment(self, steamID : str, day : date, field : str):
        if field not in COUNTER_FIELDS:
            raise ValueError("Unknown playtime counter %s" % field)
        self._db.ExecuteQuery(f"UPDATE {PLAYTIME_TABLE} SET {field} = {field} + 1 WHERE steamID = ? AND date = ?",
                              (steamID, DateKey(day)))

    def BulkCreate(self, records : list[PlaytimeRecord]) -> int:
        rows = [(r.steamID, r.date, r.minutesPlayed, r.minutesSeeded, r.clanTag) for r in records]
        return self._db.ExecuteMany(f"INSERT INTO {PLAYTIME_TABLE} (steamID, date, minutesPlayed, minutesSeeded, clanTag) VALUES (?, ?, ?, ?, ?)", rows)

    def Count(self) -> int:
        return self._db.ExecuteQuery(f"SELECT COUNT(*) FROM {PLAYTIME_TABLE}", withResponse = True)[0][0]

    def FindAll(self) -> list[PlaytimeRecord]:
        rows = self._db.ExecuteQuery(f"SELECT steamID, date, minutesPlayed, minutesSeeded, clanTag FROM {PLAYTIME_TABLE} ORDER BY date, steamID",
                                     withResponse = True)
        return [PlaytimeRecord(*row) for row in rows]

    def SumByClan(self, dateFrom : date, dateTill : date) -> list[tuple[str, int, int]]:
        """Sums both counters per clan over [dateFrom, dateTill], rows without a clan are left out."""
        return self._db.ExecuteQuery(f"""SELECT clanTag, SUM(minutesPlayed), SUM(minutesSeeded) FROM {PLAYTIME_TABLE}
                                     WHERE date BETWEEN ? AND ? AND clanTag IS NOT NULL
                                     GROUP BY clanTag""",
                                     (DateKey(dateFrom), DateKey(dateTill)), withResponse = True)


def ComputeRatio(played : int, seeded : int) -> float:
    if played == 0:
        if seeded == 0:
            return math.nan
        return MAX_RATIO
    return util.Clamp(0.0, seeded / played, MAX_RATIO)


def FormatRatio(ratio : float) -> str:
    if math.isnan(ratio):
        return RATIO_PLACEHOLDER
    return f"{ratio:.1f}"


def AggregateClans(repository : PlaytimeRepository, knownClans, dateFrom : date, dateTill : date) -> list[ClanAggregate]:
    """
    Sums playtime per clan over an inclusive date window. Clans known from the whitelist with no
    tracked time get a zero row, the result is ordered by clan tag.
    """
    aggregates = []
    for clanTag, played, seeded in repository.SumByClan(dateFrom, dateTill):
        played = played or 0
        seeded = seeded or 0
        aggregates.append(ClanAggregate(clanTag, played, seeded, ComputeRatio(played, seeded)))

    tracked = set(it.clanTag for it in aggregates)
    for clanTag in knownClans:
        if clanTag not in tracked:
            tracked.add(clanTag)
            aggregates.append(ClanAggregate(clanTag, 0, 0, math.nan))

    aggregates.sort(key = lambda it: it.clanTag)
    return aggregates


def MigrateLegacyPlaytime(repository : PlaytimeRepository) -> int:
    """
    Copies rows of the old two table layout (player registry + playtime) into the playtime table,
    carrying each player's clan tag onto its rows. Skipped when the playtime table already holds
    anything or when there is nothing to migrate from.

    Errors are not handled here, a failed migration has to stop the startup.

    :return: number of migrated rows
    """
    db = repository.GetDatabase()
    if repository.Count() > 0:
        Log.debug("Playtime table is not empty, skipping legacy migration.")
        return 0
    if not db.TableExists(LEGACY_PLAYTIME_TABLE):
        Log.debug("No legacy playtime table found, nothing to migrate.")
        return 0

    if db.TableExists(LEGACY_PLAYER_TABLE):
        query = f"""SELECT pt.steamID, pt.date, pt.minutesPlayed, pt.minutesSeeded, p.clanTag
                    FROM {LEGACY_PLAYTIME_TABLE} pt
                    LEFT JOIN {LEGACY_PLAYER_TABLE} p ON p.steamID = pt.steamID"""
    else:
        Log.warning("Legacy player table %s is missing, migrated rows will have no clan.", LEGACY_PLAYER_TABLE)
        query = f"SELECT steamID, date, minutesPlayed, minutesSeeded, NULL FROM {LEGACY_PLAYTIME_TABLE}"

    rows = db.ExecuteQuery(query, withResponse = True)
    records = [PlaytimeRecord(steamID, str(day)[:10], played or 0, seeded or 0, clanTag) for steamID, day, played, seeded, clanTag in rows]
    if len(records) == 0:
        return 0
    migrated = repository.BulkCreate(records)
    Log.info("Migrated %d legacy playtime rows into %s.", migrated, PLAYTIME_TABLE)
    return migrated
