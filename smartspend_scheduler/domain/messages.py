"""Notification and email content for scheduler events"""

from datetime import date
from html import escape

from smartspend_scheduler.domain.models import EmailContent, Message, Severity, TransactionKind

SIGNATURE = "SmartSpend Team"


def format_amount(amount_cents: int) -> str:
    """Render minor units for display, e.g. 150050 -> "Rs 1,500.50" """
    return f"Rs {amount_cents / 100:,.2f}"


def _html_email(heading: str, greeting_name: str, paragraphs: list[str], color: str = "#333") -> str:
    body = "\n".join(f"  <p>{p}</p>" for p in paragraphs)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">\n'
        f'  <h2 style="color: {color};">{escape(heading)}</h2>\n'
        f"  <p>Hello {escape(greeting_name)},</p>\n"
        f"{body}\n"
        f"  <p>Best regards,<br><strong>{SIGNATURE}</strong></p>\n"
        "</div>"
    )


def _text_email(greeting_name: str, paragraphs: list[str]) -> str:
    return "\n\n".join([f"Hello {greeting_name},", *paragraphs, f"Best regards,\n{SIGNATURE}"])


def recurring_processed(kind: TransactionKind, description: str, amount_cents: int) -> Message:
    label = kind.value.capitalize()
    return Message(
        title=f"Recurring {label} Processed",
        body=f'Your recurring {kind.value} "{description}" of {format_amount(amount_cents)} has been processed.',
        severity=Severity.SUCCESS,
    )


def recurring_failed(kind: TransactionKind, description: str) -> Message:
    label = kind.value.capitalize()
    return Message(
        title=f"Recurring {label} Error",
        body=(
            f'There was an error processing your recurring {kind.value} "{description}". '
            "Please check your records."
        ),
        severity=Severity.ERROR,
    )


def contribution_added(goal_name: str, amount_cents: int) -> Message:
    return Message(
        title="Automatic Contribution Added",
        body=f'{format_amount(amount_cents)} has been automatically added to your goal "{goal_name}"',
        severity=Severity.INFO,
    )


def contribution_added_email(
    user_name: str,
    goal_name: str,
    amount_cents: int,
    saved_cents: int,
    target_cents: int,
) -> EmailContent:
    amount = format_amount(amount_cents)
    progress = f"{format_amount(saved_cents)} / {format_amount(target_cents)}"
    return EmailContent(
        subject="Automatic Contribution Added to Your Goal",
        text=_text_email(
            user_name,
            [
                f'{amount} has been automatically added to your goal "{goal_name}".',
                f"Your current progress: {progress}",
                "Keep up the great work on your financial journey!",
            ],
        ),
        html=_html_email(
            "Automatic Contribution Added",
            user_name,
            [
                f"{amount} has been automatically added to your goal <strong>&quot;{escape(goal_name)}&quot;</strong>.",
                f"Your current progress: <strong>{progress}</strong>",
                "Keep up the great work on your financial journey!",
            ],
        ),
    )


def contribution_failed(goal_name: str) -> Message:
    return Message(
        title="Goal Contribution Error",
        body=f'There was an error adding the automatic contribution to your goal "{goal_name}".',
        severity=Severity.ERROR,
    )


def goal_notice_failed(goal_name: str) -> Message:
    return Message(
        title="Goal Reminder Error",
        body=f'There was an error sending the reminder for your goal "{goal_name}".',
        severity=Severity.ERROR,
    )


def goal_expiring_soon(goal_name: str, target_date: date, saved_cents: int, target_cents: int) -> Message:
    return Message(
        title="Goal Expiring Soon",
        body=(
            f'Your goal "{goal_name}" reaches its target date on {target_date.isoformat()}. '
            f"Progress: {format_amount(saved_cents)} / {format_amount(target_cents)}"
        ),
        severity=Severity.WARNING,
    )


def goal_achieved(goal_name: str, saved_cents: int, target_cents: int) -> Message:
    return Message(
        title="Goal Achieved",
        body=f'Congratulations! You reached your goal "{goal_name}" with {format_amount(saved_cents)} saved.',
        severity=Severity.SUCCESS,
    )


def goal_expired(goal_name: str, saved_cents: int, target_cents: int) -> Message:
    return Message(
        title="Goal Expired",
        body=(
            f'Your goal "{goal_name}" has passed its target date. '
            f"You saved {format_amount(saved_cents)} of {format_amount(target_cents)}."
        ),
        severity=Severity.INFO,
    )


def bill_reminder(bill_name: str, amount_cents: int, due_date: date | None) -> Message:
    due = due_date.isoformat() if due_date else "soon"
    return Message(
        title="Bill Reminder",
        body=f"{bill_name} is due on {due}. Amount: {format_amount(amount_cents)}",
        severity=Severity.WARNING,
    )


def bill_reminder_failed(bill_name: str) -> Message:
    return Message(
        title="Bill Reminder Error",
        body=f'There was an error sending the reminder for your bill "{bill_name}".',
        severity=Severity.ERROR,
    )


def achievement_unlocked(title: str) -> Message:
    return Message(title="New Achievement Unlocked!", body=title, severity=Severity.SUCCESS)


def as_email(user_name: str, message: Message) -> EmailContent:
    """Mirror an in-app notification as an email with the same content"""
    colors = {
        Severity.SUCCESS: "#28a745",
        Severity.WARNING: "#f0ad4e",
        Severity.ERROR: "#d9534f",
    }
    return EmailContent(
        subject=f"{message.title} - SmartSpend",
        text=_text_email(user_name, [message.body]),
        html=_html_email(message.title, user_name, [escape(message.body)], colors.get(message.severity, "#333")),
    )
