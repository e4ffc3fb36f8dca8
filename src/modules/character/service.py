"""
Character Service
=================

Purpose
-------
Find-or-create of the (user, character) pair behind a Discord account in a
guild, and character lookups for the command layer.

Domain
------
- One user row per (discord_id, guild_id)
- One character per user, created with ``character.starting_gold``
- Registration is idempotent: registering twice returns the existing
  character unchanged
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.validation.input_validator import InputValidator
from src.database.models import Character, User
from src.modules.ledger.repositories import CharacterRepository, UserRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import CharacterNotFoundError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.modules.shared.base_service import Clock


@dataclass(frozen=True)
class CharacterProfile:
    id: int
    user_id: int
    discord_id: str
    guild_id: str
    name: str
    gold: int
    created_at: datetime
    created: bool = False

    @classmethod
    def from_models(cls, user: User, character: Character, created: bool = False) -> CharacterProfile:
        return cls(
            id=character.id,
            user_id=user.id,
            discord_id=user.discord_id,
            guild_id=user.guild_id,
            name=character.name,
            gold=character.gold,
            created_at=character.created_at,
            created=created,
        )


class CharacterService(BaseService):
    """
    Character registry.

    Public Methods
    --------------
    - register() -> Find-or-create user and character
    - get_by_discord() -> Lookup by Discord identity
    - get_character() -> Lookup by character id
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger, clock)
        self._users = UserRepository(User, get_logger(f"{__name__}.UserRepository"))
        self._characters = CharacterRepository(
            Character, get_logger(f"{__name__}.CharacterRepository")
        )

    async def register(self, discord_id: str, guild_id: str, name: str) -> CharacterProfile:
        """
        Return the character for this Discord identity, creating it if needed.

        New characters start with ``character.starting_gold``.

        Raises:
            ValidationError: If ids are not snowflakes or the name is empty/too long
        """
        discord_id = InputValidator.validate_discord_id(discord_id)
        guild_id = InputValidator.validate_discord_id(guild_id, field_name="guild_id")
        name = InputValidator.validate_string(
            name,
            field_name="name",
            min_length=1,
            max_length=self.get_int_config("character.max_name_length", 32),
        )
        starting_gold = self.get_int_config("character.starting_gold", 100)

        async with DatabaseService.get_transaction() as session:
            user = await self._users.find_by_discord(session, discord_id, guild_id)
            if user is None:
                user = self._users.add(
                    session,
                    User(discord_id=discord_id, guild_id=guild_id, created_at=self.now()),
                )
                await self._users.flush(session)

            character = await self._characters.find_by_user(session, user.id)
            created = character is None
            if character is None:
                character = self._characters.add(
                    session,
                    Character(
                        user_id=user.id,
                        name=name,
                        gold=starting_gold,
                        created_at=self.now(),
                    ),
                )
                await self._characters.flush(session)

            profile = CharacterProfile.from_models(user, character, created=created)

        if created:
            self.log_operation(
                "register",
                discord_id=discord_id,
                guild_id=guild_id,
                character_id=profile.id,
                starting_gold=starting_gold,
            )
        return profile

    async def get_by_discord(self, discord_id: str, guild_id: str) -> CharacterProfile:
        """
        Raises:
            CharacterNotFoundError: If the account never registered in this guild
        """
        discord_id = InputValidator.validate_discord_id(discord_id)
        guild_id = InputValidator.validate_discord_id(guild_id, field_name="guild_id")

        async with DatabaseService.get_session() as session:
            user = await self._users.find_by_discord(session, discord_id, guild_id)
            character = (
                await self._characters.find_by_user(session, user.id) if user else None
            )
            if user is None or character is None:
                raise CharacterNotFoundError(discord_id)
            return CharacterProfile.from_models(user, character)

    async def get_character(self, character_id: int) -> CharacterProfile:
        character_id = InputValidator.validate_id(character_id, "character_id")

        async with DatabaseService.get_session() as session:
            character = await self._characters.get(session, character_id)
            if character is None:
                raise CharacterNotFoundError(character_id)
            user = await self._users.get(session, character.user_id)
            if user is None:
                raise CharacterNotFoundError(character_id)
            return CharacterProfile.from_models(user, character)
