# TimeAudit - Weekly timesheets, approvals and leave calendar

__version__ = "0.1.0"
