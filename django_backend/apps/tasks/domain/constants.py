class Status:
    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    WAITING_CONTROL = "waiting_control"
    ON_CONTROL = "on_control"
    COMPLETED = "completed"

    ALL = (NEW, ACKNOWLEDGED, IN_PROGRESS, PAUSED, WAITING_CONTROL, ON_CONTROL, COMPLETED)


class Role:
    DIRECTOR = "director"
    DEPARTMENT_HEAD = "department_head"
    EMPLOYEE = "employee"
    ADMIN = "admin"

    MANAGERS = (DIRECTOR, DEPARTMENT_HEAD)
    # roles that see every task in listings
    SUPERVISORS = (DIRECTOR, DEPARTMENT_HEAD, ADMIN)


STATUS_LABELS = {
    Status.NEW: "New",
    Status.ACKNOWLEDGED: "Acknowledged",
    Status.IN_PROGRESS: "In progress",
    Status.PAUSED: "Paused",
    Status.WAITING_CONTROL: "Waiting for control",
    Status.ON_CONTROL: "On control",
    Status.COMPLETED: "Completed",
}

PRIORITY_LABELS = {
    1: "Critical",
    2: "High",
    3: "Medium",
    4: "Low",
    5: "Very low",
}
