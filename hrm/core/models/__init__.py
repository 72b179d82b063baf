from hrm.core.models.employee import Department, Employee, Position
from hrm.core.models.work_shift import EmployeeShiftAssignment, WorkSchedule, WorkShift
from hrm.core.models.attendance import Attendance, AttendanceDetail, AttendanceSummary
from hrm.core.models.public_holiday import PublicHoliday
from hrm.core.models.leave_policy import EmployeeLeaveBalance, LeavePolicy
from hrm.core.models.leave_request import LeaveApprovalWorkflow, LeaveRequest
from hrm.core.models.leave_audit_log import LeaveAuditLog

__all__ = [
    "Attendance",
    "AttendanceDetail",
    "AttendanceSummary",
    "Department",
    "Employee",
    "EmployeeLeaveBalance",
    "EmployeeShiftAssignment",
    "LeaveApprovalWorkflow",
    "LeaveAuditLog",
    "LeavePolicy",
    "LeaveRequest",
    "Position",
    "PublicHoliday",
    "WorkSchedule",
    "WorkShift",
]
