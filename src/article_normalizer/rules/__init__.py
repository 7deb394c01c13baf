"""Site rules: lookup and custom root locators."""

from .locators import available_locators, next_after_heading, register_locator, run_locator
from .repository import RuleRepository, YamlRuleRepository, domain_key

__all__ = [
    "RuleRepository",
    "YamlRuleRepository",
    "available_locators",
    "domain_key",
    "next_after_heading",
    "register_locator",
    "run_locator",
]
