"""
Three-tier schedule resolution: employee override > department override >
company default, merged field by field.
"""

from pointage.schemas.employee import Employee
from pointage.schemas.schedule import ScheduleConfig, ScheduleDetails, ScheduleOverride


_FIELDS = ("morning", "afternoon", "works_saturday")


def _merge(default: ScheduleDetails, override: ScheduleOverride) -> ScheduleDetails:
    changes = {
        name: getattr(override, name)
        for name in _FIELDS
        if getattr(override, name) is not None
    }
    return default.model_copy(update=changes)


def resolve_schedule(employee: Employee, config: ScheduleConfig) -> ScheduleDetails:
    """Return the effective schedule for ``employee``. Never fails."""
    override = config.employee_overrides.get(employee.matricule)
    if override is not None:
        return _merge(config.company_default, override)

    dept_default = config.department_defaults.get(employee.department)
    if dept_default is not None:
        return _merge(config.company_default, dept_default)

    return config.company_default
