from fastapi import Request

from pointage.services.rules import AttendanceRules


def get_rules(request: Request) -> AttendanceRules:
    """Engine configuration built once at import time in ``pointage.main``."""
    return request.app.state.rules
