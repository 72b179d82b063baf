from enum import Enum


class Role(str, Enum):
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    HR_MANAGER = "HR_MANAGER"
    ADMIN = "ADMIN"


class EmployeeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TERMINATED = "TERMINATED"
    ON_LEAVE = "ON_LEAVE"
    SUSPENDED = "SUSPENDED"


class ShiftType(str, Enum):
    FIXED = "FIXED"
    ROTATING = "ROTATING"
    PROJECT = "PROJECT"
    FLEXIBLE = "FLEXIBLE"
    PART_TIME = "PART_TIME"


class ShiftStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TEMPORARY = "TEMPORARY"


class PunchType(str, Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"
    BREAK_START = "BREAK_START"
    BREAK_END = "BREAK_END"


class AttendanceStatus(str, Enum):
    ON_TIME = "ON_TIME"
    LATE = "LATE"
    EARLY = "EARLY"
    OVERTIME = "OVERTIME"
    NO_SHOW = "NO_SHOW"
    APPROVED = "APPROVED"


class LeaveType(str, Enum):
    ANNUAL = "ANNUAL"
    SICK = "SICK"
    PERSONAL = "PERSONAL"
    MATERNITY = "MATERNITY"
    PATERNITY = "PATERNITY"
    BEREAVEMENT = "BEREAVEMENT"
    STUDY = "STUDY"
    BUSINESS = "BUSINESS"
    COMPENSATORY = "COMPENSATORY"
    UNPAID = "UNPAID"
    MARRIAGE = "MARRIAGE"
    EMERGENCY = "EMERGENCY"


class LeaveStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# Requests in these states block overlapping requests for the same employee
ACTIVE_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED, LeaveStatus.IN_PROGRESS)
# Requests in these states may be physically deleted
DELETABLE_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.REJECTED, LeaveStatus.CANCELLED)
