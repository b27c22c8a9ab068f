class PathSiftError(Exception):
    # base exception for all application-specific errors.
    pass

class ConfigError(PathSiftError):
    # errors related to configuration.
    pass

class PatternTypeError(PathSiftError, TypeError):
    # a rule fragment that is not text.
    pass

class DiscoveryError(PathSiftError):
    # errors during file discovery (e.g. unreadable traversal root).
    pass
