import asyncio
import logging
import os
import threading

import discord
from dotenv import load_dotenv

Log = logging.getLogger(__name__)

TOKEN_PLACEHOLDER = "your_token_here"
ENV_TEMPLATE = \
"""DISCORD_BOT_TOKEN=your_token_here
"""


class DiscordConnectorError(Exception):
    pass


def LoadToken(envPath : str) -> str:
    """Reads the bot token from a dotenv file, a template is written when the file is missing."""
    if not os.path.exists(envPath):
        Log.warning("%s not found, creating a template.", envPath)
        with open(envPath, "wt") as f:
            f.write(ENV_TEMPLATE)
    load_dotenv(envPath)
    token = os.getenv("DISCORD_BOT_TOKEN")
    if token == None or token == "" or token.lower() == TOKEN_PLACEHOLDER:
        return None
    return token


class DiscordConnector():
    """
    Discord client living on its own thread with its own event loop. Other threads deliver messages
    through SendMessage, which blocks until Discord answered.
    """
    def __init__(self, token : str, readyTimeout : float = 30, sendTimeout : float = 30):
        self._token = token
        self._readyTimeout = readyTimeout
        self._sendTimeout = sendTimeout
        self._client = discord.Client(intents = discord.Intents.default())
        self._loop = None
        self._thread = None
        self._ready = threading.Event()

        @self._client.event
        async def on_ready():
            Log.info("Logged in to Discord as %s (ID: %s)", self._client.user, self._client.user.id)
            self._ready.set()

    def Start(self) -> bool:
        self._thread = threading.Thread(target = self._Run, daemon = True, name = "DiscordConnector")
        self._thread.start()
        if not self._ready.wait(self._readyTimeout):
            Log.error("Discord client was not ready after %s seconds.", self._readyTimeout)
            return False
        return True

    def _Run(self):
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._client.start(self._token))
        except discord.DiscordException as e:
            Log.error("Discord client stopped with an error : %s", e)
        finally:
            if not self._client.is_closed():
                self._loop.run_until_complete(self._client.close())
            self._loop.close()

    def IsReady(self) -> bool:
        return self._ready.is_set() and not self._client.is_closed()

    def Stop(self):
        if self._thread == None:
            return
        if self._loop != None and self._loop.is_running():
            future = asyncio.run_coroutine_threadsafe(self._client.close(), self._loop)
            try:
                future.result(timeout = 5)
            except TimeoutError:
                Log.error("Timed out waiting for Discord client to close.")
        self._thread.join(timeout = 5)
        if self._thread.is_alive():
            Log.warning("Discord thread did not terminate.")
        self._thread = None

    async def _Send(self, channelId, content : str, embed : discord.Embed, allowedMentions : discord.AllowedMentions, crosspost : bool) -> discord.Message:
        channel = self._client.get_channel(int(channelId))
        if channel == None:
            channel = await self._client.fetch_channel(int(channelId))
        if not isinstance(channel, discord.abc.Messageable):
            raise DiscordConnectorError("Channel %s is not a text channel" % channelId)

        kwargs = {}
        if content != None:
            kwargs["content"] = content
        if embed != None:
            kwargs["embed"] = embed
        if allowedMentions != None:
            kwargs["allowed_mentions"] = allowedMentions
        message = await channel.send(**kwargs)
        Log.debug("Sent message %s to channel %s", message.id, channelId)

        if crosspost:
            try:
                await message.publish()
                Log.debug("Message %s crossposted", message.id)
            except discord.HTTPException as e:
                Log.error("Error when crossposting message %s : %s", message.id, e)
        return message

    def SendMessage(self, channelId, content : str = None, embed : discord.Embed = None, allowedMentions : discord.AllowedMentions = None, crosspost : bool = False) -> discord.Message:
        """
        Sends a message to a channel from any thread.

        :raises DiscordConnectorError: when the client is not running
        :raises discord.DiscordException: when Discord refused the message
        """
        if not self.IsReady() or self._loop == None:
            raise DiscordConnectorError("Discord client is not ready")
        future = asyncio.run_coroutine_threadsafe(self._Send(channelId, content, embed, allowedMentions, crosspost), self._loop)
        try:
            return future.result(timeout = self._sendTimeout)
        except (discord.DiscordException, TimeoutError) as e:
            Log.error("Unable to send message to channel %s : %s", channelId, e)
            raise
