"""Exception types raised by the combat engines and coordinators."""


class CombatError(Exception):
    pass


class InvalidFighterError(CombatError, ValueError):
    """A fighter snapshot is malformed (bad stats, HP out of range, ...)."""


class UnknownBossError(CombatError, KeyError):
    pass


class ChallengeError(CombatError):
    pass


class ChallengeNotFound(ChallengeError, LookupError):
    pass


class BossBattleError(CombatError):
    pass


class RewardError(CombatError):
    """Reward disbursement failed; the battle outcome stands."""
