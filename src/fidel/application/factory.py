"""
Service Factory
Centralizes the wiring of adapters into a LearnerService from configuration.
"""

from fidel.application.config import AppConfig
from fidel.application.progress.achievements import AchievementEvaluator, default_rules
from fidel.application.scheduler import ReviewScheduler, SchedulerPolicy
from fidel.application.service import LearnerService
from fidel.domain.ports import CardSource, StateStore
from fidel.infrastructure.adapters.card_sources import YamlCardSource
from fidel.infrastructure.adapters.json_store import JsonFileStateStore


def get_card_source(config: AppConfig) -> CardSource:
    """
    Returns the configured deck, or the bundled phrase deck if none is set.
    """
    return YamlCardSource(config.cards_file)


def get_state_store(config: AppConfig) -> StateStore:
    return JsonFileStateStore(config.state_file)


def get_learner_service(config: AppConfig) -> LearnerService:
    """
    Returns a LearnerService wired to file-backed adapters and the configured policy.
    """
    policy = SchedulerPolicy(
        initial_ease=config.initial_ease,
        min_ease=config.min_ease,
        ease_bonus=config.ease_bonus,
        ease_penalty=config.ease_penalty,
    )
    return LearnerService(
        get_card_source(config),
        get_state_store(config),
        scheduler=ReviewScheduler(policy),
        evaluator=AchievementEvaluator(default_rules(streak_target=config.streak_target)),
    )
