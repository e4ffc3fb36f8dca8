"""
Integration tests for CharacterService and CatalogService.

Registration is find-or-create per (discord_id, guild_id); catalog seeding
is an idempotent upsert by item key.
"""

import json

import pytest

from src.modules.shared.exceptions import (
    CharacterNotFoundError,
    ItemNotFoundError,
    ValidationError,
)


@pytest.mark.integration
@pytest.mark.database
class TestCharacterRegistration:
    async def test_register_creates_with_starting_gold(self, database, container):
        profile = await container.character.register("111", "999", "  Aria ")

        assert profile.created is True
        assert profile.name == "Aria"
        assert profile.gold == 100
        assert profile.discord_id == "111"

    async def test_register_is_idempotent(self, database, container):
        first = await container.character.register("111", "999", "Aria")
        second = await container.character.register("111", "999", "Someone Else")

        assert second.created is False
        assert second.id == first.id
        assert second.name == "Aria"

    async def test_same_account_in_two_guilds(self, database, container):
        one = await container.character.register("111", "1", "Aria")
        two = await container.character.register("111", "2", "Aria")

        assert one.id != two.id

    async def test_starting_gold_from_config(self, database, container, config_manager):
        config_manager.set("character.starting_gold", 250)

        profile = await container.character.register("5", "6", "Rich")

        assert profile.gold == 250

    @pytest.mark.parametrize(
        "discord_id, name",
        [("abc", "Aria"), ("111", ""), ("111", "x" * 33)],
    )
    async def test_register_validation(self, database, container, discord_id, name):
        with pytest.raises(ValidationError):
            await container.character.register(discord_id, "999", name)

    async def test_lookups(self, database, container):
        created = await container.character.register("111", "999", "Aria")

        by_discord = await container.character.get_by_discord("111", "999")
        by_id = await container.character.get_character(created.id)

        assert by_discord.id == by_id.id == created.id
        assert by_id.created is False

    async def test_unknown_character(self, database, container):
        with pytest.raises(CharacterNotFoundError):
            await container.character.get_by_discord("404", "999")
        with pytest.raises(CharacterNotFoundError):
            await container.character.get_character(404)


@pytest.mark.integration
@pytest.mark.database
class TestCatalog:
    async def test_seed_project_catalog(self, database, container):
        result = await container.catalog.seed_items()

        items = await container.catalog.list_items()
        assert result.inserted == len(items) > 0
        assert [item.name for item in items] == sorted(item.name for item in items)

        sword = await container.catalog.get_item("iron_sword")
        assert sword.name == "Iron Sword"
        assert sword.base_value == 50

    async def test_reseed_updates_changed_entries(self, database, container, tmp_path):
        seed = tmp_path / "items.json"
        seed.write_text(
            json.dumps(
                [
                    {"key": "ruby", "name": "Ruby", "baseValue": 250},
                    {"key": "opal", "name": "Opal", "baseValue": 90},
                ]
            ),
            encoding="utf-8",
        )
        await container.catalog.seed_items(seed)

        seed.write_text(
            json.dumps(
                [
                    {"key": "ruby", "name": "Ruby", "baseValue": 300},
                    {"key": "opal", "name": "Opal", "base_value": 90},
                ]
            ),
            encoding="utf-8",
        )
        result = await container.catalog.seed_items(seed)

        assert (result.inserted, result.updated, result.unchanged) == (0, 1, 1)
        assert (await container.catalog.get_item("ruby")).base_value == 300

    async def test_seed_rejects_duplicate_keys(self, database, container, tmp_path):
        seed = tmp_path / "items.json"
        seed.write_text(
            json.dumps(
                [
                    {"key": "ruby", "name": "Ruby", "baseValue": 1},
                    {"key": "ruby", "name": "Ruby Again", "baseValue": 2},
                ]
            ),
            encoding="utf-8",
        )

        with pytest.raises(ValidationError):
            await container.catalog.seed_items(seed)

        assert await container.catalog.list_items() == []

    async def test_seed_rejects_bad_entry(self, database, container, tmp_path):
        seed = tmp_path / "items.json"
        seed.write_text(json.dumps([{"key": "Bad Key", "name": "x", "baseValue": 1}]))

        with pytest.raises(ValidationError):
            await container.catalog.seed_items(seed)

    async def test_unknown_item(self, database, container):
        with pytest.raises(ItemNotFoundError):
            await container.catalog.get_item("nothing_here")
