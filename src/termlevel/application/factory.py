"""
Collaborator factory.
Centralizes construction of the store and language-model adapters from config.
"""

from termlevel.application.config import AppConfig
from termlevel.application.session import StudySession
from termlevel.infrastructure.adapters.json_store import JsonFileStore
from termlevel.infrastructure.adapters.openai_service import OpenAIChatService


def get_store(config: AppConfig) -> JsonFileStore:
    return JsonFileStore(config.data_file)


def get_llm_service(config: AppConfig) -> OpenAIChatService:
    """
    Returns the chat service used for questions, grading and image-to-text.

    Raises:
        ConfigurationError: no API key is configured.
    """
    return OpenAIChatService(
        api_key=config.openai_api_key,
        model=config.openai_model,
        base_url=config.openai_base_url,
        timeout=config.request_timeout,
    )


def open_session(
    config: AppConfig, with_services: bool = False, sweep: bool = True
) -> StudySession:
    """
    Load a StudySession from the configured store.

    Services are only built when requested so offline commands work without
    an API key.
    """
    service = get_llm_service(config) if with_services else None
    session = StudySession(
        store=get_store(config),
        question_service=service,
        grading_service=service,
    )
    return session.load(sweep=sweep)
