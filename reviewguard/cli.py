import click
from flask.cli import with_appcontext

from reviewguard.extensions import db
from reviewguard.exceptions import ReviewGuardError
from reviewguard.models.billing import Subscription


@click.command('send-follow-ups')
@with_appcontext
def send_follow_ups():
    """Send reminders for overdue review requests now"""
    from reviewguard.tasks.follow_up_tasks import run_due_follow_ups

    click.echo("📨 Sending due follow-ups...")
    summary = run_due_follow_ups()
    click.echo(
        f"✅ {summary['sent']} sent, {summary['failed']} failed across {summary['tenants']} tenants"
    )


@click.command('reset-quotas')
@click.option('--email', default=None, help='Only reset this account')
@with_appcontext
def reset_quotas(email):
    """Reset SMS usage counters"""
    from reviewguard.services import get_quota_guard

    query = Subscription.query
    if email:
        query = query.filter_by(email=email.strip().lower())

    guard = get_quota_guard()
    count = 0
    for subscription in query.all():
        guard.reset_usage(subscription)
        count += 1
    db.session.commit()
    click.echo(f"🔄 Reset usage for {count} subscriptions")


@click.command('test-sms')
@click.argument('phone')
@click.option('--body', default='ReviewGuard test message', help='Message text')
@with_appcontext
def test_sms(phone, body):
    """Send a single SMS through the configured carrier"""
    from reviewguard.services import get_sms_service
    from reviewguard.utils.validators import format_phone_number

    try:
        to_number = format_phone_number(phone)
        result = get_sms_service().send_message(to_number, body)
    except ReviewGuardError as e:
        click.echo(f"❌ Send failed: {e.message}")
        return
    click.echo(f"✅ Sent {result['sid']} ({result['status']})")


def init_app(app):
    app.cli.add_command(send_follow_ups)
    app.cli.add_command(reset_quotas)
    app.cli.add_command(test_sms)
