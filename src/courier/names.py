"""Resource name helpers."""


def full_topic_name(project: str, name: str) -> str:
    return f"/topics/{project}/{name}"


def full_subscription_name(project: str, name: str) -> str:
    return f"/subscriptions/{project}/{name}"
