from __future__ import annotations

from gumboard.core.application.notifications.policy import NotificationAction

ACTION_EMOJI: dict[NotificationAction, str] = {
    NotificationAction.ADDED: ":heavy_plus_sign:",
    NotificationAction.COMPLETED: ":white_check_mark:",
    NotificationAction.REOPENED: ":arrows_counterclockwise:",
}


def board_link(board_name: str, board_url: str | None = None) -> str:
    """Slack mrkdwn link ``<url|name>``, or the bare name when no URL is known."""
    if not board_url:
        return board_name
    return f"<{board_url}|{board_name}>"


def format_message(
    content: str,
    action: NotificationAction | str,
    actor_name: str,
    board_name: str,
    board_url: str | None = None,
) -> str:
    """
    ``"<emoji> <content> by <actor> in <board>"``.

    Content is already sanitized upstream and is passed through verbatim.
    """
    emoji = ACTION_EMOJI[NotificationAction(action)]
    return f"{emoji} {content} by {actor_name} in {board_link(board_name, board_url)}"
