"""Pattern rules used by the offline (rule-based) concept namer.

Rule sets are plain immutable values handed to the namer at construction
time; tests build their own instead of patching shared state.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class NamingRule:
    """Assign ``canonical_name`` when ``pattern`` matches a cluster's text."""
    pattern: re.Pattern
    canonical_name: str
    quizzability_score: float
    non_quizzable_reason: str | None = None


@dataclass(frozen=True)
class MisfitRule:
    """Flag any sample title matching ``pattern`` as a misfit."""
    pattern: re.Pattern
    reason: str


@dataclass(frozen=True)
class NamingRuleSet:
    naming_rules: tuple[NamingRule, ...] = ()
    misfit_rules: tuple[MisfitRule, ...] = ()

    def with_naming_rule(self, rule: NamingRule) -> "NamingRuleSet":
        """Copy with ``rule`` taking priority over the existing ones."""
        return NamingRuleSet(naming_rules=(rule,) + self.naming_rules, misfit_rules=self.misfit_rules)

    def with_misfit_rule(self, rule: MisfitRule) -> "NamingRuleSet":
        return NamingRuleSet(naming_rules=self.naming_rules, misfit_rules=(rule,) + self.misfit_rules)

    def match(self, text: str) -> NamingRule | None:
        for rule in self.naming_rules:
            if rule.pattern.search(text):
                return rule
        return None

    def misfit_reason(self, title: str) -> str | None:
        for rule in self.misfit_rules:
            if rule.pattern.search(title):
                return rule.reason
        return None


def _rule(pattern: str, name: str, score: float, reason: str | None = None) -> NamingRule:
    return NamingRule(re.compile(pattern, re.IGNORECASE), name, score, reason)


DEFAULT_RULE_SET = NamingRuleSet(
    naming_rules=(
        # Technical / learning content
        _rule(r"react", "React Development", 0.9),
        _rule(r"typescript|\bts\b", "TypeScript", 0.9),
        _rule(r"javascript|\bjs\b", "JavaScript", 0.85),
        _rule(r"python", "Python Programming", 0.9),
        _rule(r"golf", "Golf Mechanics", 0.75),
        _rule(r"algorithm", "Algorithms", 0.95),
        # Not quizzable
        _rule(r"meeting|standup|\bsync\b", "Meeting Notes", 0.1,
              "Meeting notes are time-bound and not suitable for spaced repetition"),
        _rule(r"daily|journal", "Daily Journal", 0.15,
              "Daily journal entries are personal reflections, not knowledge to recall"),
        _rule(r"todo|task", "Task Lists", 0.05,
              "Task lists are ephemeral and not suitable for long-term recall"),
    ),
    misfit_rules=(
        MisfitRule(re.compile(r"grocery|shopping\s*list", re.IGNORECASE),
                   "Shopping lists are personal/productivity content, not knowledge"),
        MisfitRule(re.compile(r"recipe", re.IGNORECASE), "Recipes belong in a cooking/food category"),
    ),
)
