from .settings import FilterConfig, MatchMode, RuleCategory

__all__ = ["FilterConfig", "MatchMode", "RuleCategory"]
