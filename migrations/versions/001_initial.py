"""Initial ReviewGuard schema

Revision ID: 001_initial
Revises:
Create Date: 2025-07-20 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create users table
    op.create_table('users',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('password_hash', sa.String(length=255), nullable=False),
    sa.Column('first_name', sa.String(length=50), nullable=True),
    sa.Column('last_name', sa.String(length=50), nullable=True),
    sa.Column('company_name', sa.String(length=200), nullable=True),
    sa.Column('business_name', sa.String(length=200), nullable=True),
    sa.Column('google_review_link', sa.String(length=500), nullable=True),
    sa.Column('sms_template', sa.Text(), nullable=True),
    sa.Column('telegram_bot_token', sa.String(length=255), nullable=True),
    sa.Column('telegram_chat_id', sa.String(length=64), nullable=True),
    sa.Column('telegram_webhook_secret', sa.String(length=64), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Create customers table
    op.create_table('customers',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=100), nullable=False),
    sa.Column('phone', sa.String(length=20), nullable=False),
    sa.Column('tracking_token', sa.String(length=64), nullable=True),
    sa.Column('link_clicked', sa.Boolean(), nullable=False),
    sa.Column('follow_up_sent', sa.Boolean(), nullable=False),
    sa.Column('last_sms_sent_at', sa.DateTime(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id', 'phone', name='uq_customer_user_phone')
    )
    op.create_index('ix_customers_user_id', 'customers', ['user_id'], unique=False)
    op.create_index('ix_customers_phone', 'customers', ['phone'], unique=False)
    op.create_index('ix_customers_tracking_token', 'customers', ['tracking_token'], unique=True)

    # Create messages table
    op.create_table('messages',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('customer_id', sa.Integer(), nullable=False),
    sa.Column('message_type', sa.String(length=30), nullable=False),
    sa.Column('body', sa.Text(), nullable=True),
    sa.Column('media_url', sa.String(length=500), nullable=True),
    sa.Column('provider_sid', sa.String(length=64), nullable=True),
    sa.Column('delivery_status', sa.String(length=20), nullable=True),
    sa.Column('error_code', sa.String(length=20), nullable=True),
    sa.Column('review_status', sa.String(length=20), nullable=True),
    sa.Column('review_link_token', sa.String(length=64), nullable=True),
    sa.Column('feedback_token', sa.String(length=64), nullable=True),
    sa.Column('feedback_rating', sa.Integer(), nullable=True),
    sa.Column('feedback_sentiment', sa.String(length=10), nullable=True),
    sa.Column('feedback_collected_at', sa.DateTime(), nullable=True),
    sa.Column('review_link_clicked_at', sa.DateTime(), nullable=True),
    sa.Column('review_received_at', sa.DateTime(), nullable=True),
    sa.Column('follow_up_due_at', sa.DateTime(), nullable=True),
    sa.Column('follow_up_sent_at', sa.DateTime(), nullable=True),
    sa.Column('sms_consent_confirmed', sa.Boolean(), nullable=False),
    sa.Column('sent_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_messages_user_id', 'messages', ['user_id'], unique=False)
    op.create_index('ix_messages_customer_id', 'messages', ['customer_id'], unique=False)
    op.create_index('ix_messages_provider_sid', 'messages', ['provider_sid'], unique=False)
    op.create_index('ix_messages_review_status', 'messages', ['review_status'], unique=False)
    op.create_index('ix_messages_review_link_token', 'messages', ['review_link_token'], unique=False)
    op.create_index('ix_messages_feedback_token', 'messages', ['feedback_token'], unique=False)
    op.create_index('ix_messages_sent_at', 'messages', ['sent_at'], unique=False)
    op.create_index('idx_messages_user_customer_sent', 'messages', ['user_id', 'customer_id', 'sent_at'], unique=False)
    op.create_index('idx_messages_follow_up', 'messages', ['review_status', 'follow_up_due_at'], unique=False)

    # Create internal_feedback table
    op.create_table('internal_feedback',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('message_id', sa.Integer(), nullable=True),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('rating', sa.Integer(), nullable=True),
    sa.Column('sentiment', sa.String(length=10), nullable=True),
    sa.Column('feedback_text', sa.Text(), nullable=True),
    sa.Column('user_email', sa.String(length=255), nullable=True),
    sa.Column('customer_name', sa.String(length=100), nullable=True),
    sa.Column('customer_phone', sa.String(length=20), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('feedback_status', sa.String(length=20), nullable=False),
    sa.Column('assigned_to', sa.String(length=100), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_internal_feedback_message_id', 'internal_feedback', ['message_id'], unique=False)
    op.create_index('ix_internal_feedback_user_id', 'internal_feedback', ['user_id'], unique=False)
    op.create_index('ix_internal_feedback_customer_phone', 'internal_feedback', ['customer_phone'], unique=False)
    op.create_index('ix_internal_feedback_created_at', 'internal_feedback', ['created_at'], unique=False)

    # Create subscriptions table
    op.create_table('subscriptions',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=True),
    sa.Column('subscription_status', sa.String(length=20), nullable=False),
    sa.Column('plan', sa.String(length=20), nullable=False),
    sa.Column('sms_quota', sa.Integer(), nullable=False),
    sa.Column('sms_sent', sa.Integer(), nullable=False),
    sa.Column('stripe_customer_id', sa.String(length=100), nullable=True),
    sa.Column('stripe_subscription_id', sa.String(length=100), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id')
    )
    op.create_index('ix_subscriptions_email', 'subscriptions', ['email'], unique=False)
    op.create_index('ix_subscriptions_stripe_customer_id', 'subscriptions', ['stripe_customer_id'], unique=False)

    # Create event_logs table
    op.create_table('event_logs',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('event_type', sa.String(length=100), nullable=False),
    sa.Column('event_data', sa.JSON(), nullable=True),
    sa.Column('email', sa.String(length=255), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=True),
    sa.Column('error_message', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_event_logs_event_type', 'event_logs', ['event_type'], unique=False)

    # Create sms_optouts table
    op.create_table('sms_optouts',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('phone', sa.String(length=20), nullable=False),
    sa.Column('reason', sa.String(length=50), nullable=True),
    sa.Column('opted_out_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_sms_optouts_phone', 'sms_optouts', ['phone'], unique=True)

    # Create google_reviews table
    op.create_table('google_reviews',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('review_id', sa.String(length=255), nullable=False),
    sa.Column('reviewer_name', sa.String(length=200), nullable=True),
    sa.Column('star_rating', sa.Integer(), nullable=False),
    sa.Column('comment', sa.Text(), nullable=True),
    sa.Column('review_date', sa.DateTime(), nullable=True),
    sa.Column('ai_reply_draft', sa.Text(), nullable=True),
    sa.Column('posted_reply', sa.Text(), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('approval_requested_at', sa.DateTime(), nullable=True),
    sa.Column('posted_at', sa.DateTime(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id', 'review_id', name='uq_google_review_user_review')
    )
    op.create_index('ix_google_reviews_user_id', 'google_reviews', ['user_id'], unique=False)
    op.create_index('ix_google_reviews_status', 'google_reviews', ['status'], unique=False)


def downgrade():
    op.drop_table('google_reviews')
    op.drop_table('sms_optouts')
    op.drop_table('event_logs')
    op.drop_table('subscriptions')
    op.drop_table('internal_feedback')
    op.drop_table('messages')
    op.drop_table('customers')
    op.drop_table('users')
