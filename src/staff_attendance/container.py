from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .autoclose.scheduler import DailyAutoCloseTrigger
from .autoclose.service import AutoCloseService
from .core.constants import DEFAULT_WORKER_TIMEOUT_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .leaves.mysql_leave_repository import MySQLLeaveRepository
from .leaves.repository import LeaveRepository
from .leaves.service import LeaveService
from .payroll.mysql_salary_repository import MySQLSalaryRepository
from .payroll.repository import SalaryRepository
from .payroll.service import PayrollService
from .sites.mysql_site_repository import MySQLSitePolicyRepository
from .sites.repository import SitePolicyRepository
from .sites.service import SitePolicyService
from .workers.mysql_worker_repository import MySQLWorkerRepository
from .workers.repository import WorkerRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    workers_repo: WorkerRepository
    policies_repo: SitePolicyRepository
    leaves_repo: LeaveRepository
    attendance_repo: AttendanceRepository
    salaries_repo: SalaryRepository

    site_policy_service: SitePolicyService
    leave_service: LeaveService
    attendance_service: AttendanceService
    autoclose_service: AutoCloseService
    payroll_service: PayrollService
    autoclose_trigger: DailyAutoCloseTrigger


def wire(
    *,
    workers_repo: WorkerRepository,
    policies_repo: SitePolicyRepository,
    leaves_repo: LeaveRepository,
    attendance_repo: AttendanceRepository,
    salaries_repo: SalaryRepository,
    conn: Optional[DatabaseConnection] = None,
    worker_timeout: float = DEFAULT_WORKER_TIMEOUT_SECONDS,
) -> Container:
    """Build the services over any set of repositories."""

    autoclose_service = AutoCloseService(
        attendance_repo,
        workers_repo,
        leaves_repo,
        policies_repo,
        worker_timeout=worker_timeout,
    )
    return Container(
        conn=conn,
        workers_repo=workers_repo,
        policies_repo=policies_repo,
        leaves_repo=leaves_repo,
        attendance_repo=attendance_repo,
        salaries_repo=salaries_repo,
        site_policy_service=SitePolicyService(policies_repo),
        leave_service=LeaveService(leaves_repo, workers_repo),
        attendance_service=AttendanceService(attendance_repo, workers_repo, leaves_repo, policies_repo),
        autoclose_service=autoclose_service,
        payroll_service=PayrollService(salaries_repo, workers_repo, attendance_repo, leaves_repo, policies_repo),
        autoclose_trigger=DailyAutoCloseTrigger(autoclose_service),
    )


def build_container(*, db_config: dict, worker_timeout: float = DEFAULT_WORKER_TIMEOUT_SECONDS) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    return wire(
        conn=conn,
        workers_repo=MySQLWorkerRepository(conn),
        policies_repo=MySQLSitePolicyRepository(conn),
        leaves_repo=MySQLLeaveRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        salaries_repo=MySQLSalaryRepository(conn),
        worker_timeout=worker_timeout,
    )
