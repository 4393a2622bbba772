import pytest

import connectors
import database
import lib.shared.serverdata as serverdata

from helpers import FakeClock, FakeAPI, FakeDiscord, FakeWhitelister


@pytest.fixture
def fakeClock():
    return FakeClock(0.0)


@pytest.fixture
def db():
    memory = database.DatabaseLite(":memory:", "sqlite")
    memory.Open()
    yield memory
    memory.Close()


@pytest.fixture
def api():
    return FakeAPI()


@pytest.fixture
def discordClient():
    return FakeDiscord()


@pytest.fixture
def whitelister():
    return FakeWhitelister()


@pytest.fixture
def connectorTable(db, discordClient, whitelister):
    table = connectors.ConnectorTable()
    table.Add("sqlite", db)
    table.Add("discord", discordClient)
    table.Add("whitelister", whitelister)
    return table


@pytest.fixture
def serverData(api, connectorTable, fakeClock):
    return serverdata.ServerData(api, None, connectorTable, None, fakeClock)
