HELP_SECTIONS = {
    "Adding": [
        ("add buy milk", "Add a task"),
        ("add workout #fitness", "Add with a tag"),
        ("add call mom as work", "Add with a tag, spelled out"),
        ("add report !high", "Add with a priority (high, medium, low)"),
        ("add slides to launch project", "Add into a project"),
        ("add subtask outline to report", "Add a subtask to the first matching task"),
    ],
    "Updating": [
        ("tick milk", "Complete the first task containing \"milk\""),
        ("tick all milk", "Complete every task containing \"milk\""),
        ("tick subtask outline", "Complete a subtask"),
        ("delete milk", "Delete the first matching task"),
        ("archive completed", "Archive every completed task"),
        ("tag workout as fitness", "Change a task's tag"),
        ("priority report high", "Change a task's priority"),
    ],
    "Scheduling": [
        ("due tomorrow report", "Due today, tomorrow or next <weekday>"),
        ("snooze report 2 days", "Push the due date back"),
        ("repeat weekly on monday standup", "Make a task recurring"),
        ("remind me about report tomorrow 9am", "Remind at a time"),
        ("remind me 2 hours before report", "Remind ahead of the due date"),
    ],
    "Viewing": [
        ("show work tasks", "Filter by tag"),
        ("sort by due date", "Sort by priority, due date, created or name"),
        ("summarize this week", "Summary for today, tomorrow or this week"),
        ("create project launch", "Create a project"),
        ("list projects", "List projects"),
        ("calendar", "Toggle the calendar"),
        ("dark mode", "Switch theme"),
    ],
}


def help_text() -> str:
    lines = ["Available commands:"]
    for section, entries in HELP_SECTIONS.items():
        lines.append(f"\n{section}")
        for example, description in entries:
            lines.append(f"  {example:<40} {description}")
    return "\n".join(lines)
