from src.modules.character.service import CharacterProfile, CharacterService

__all__ = ["CharacterProfile", "CharacterService"]
