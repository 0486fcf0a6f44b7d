"""initial tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('qualifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
    )
    op.create_table('job_roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False, unique=True),
    )
    op.create_table('industries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
    )
    op.create_table('expertises',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False, unique=True),
    )
    op.create_table('qualification_industries',
        sa.Column('industry_id', sa.Integer(), sa.ForeignKey('industries.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('qualification_id', sa.Integer(), sa.ForeignKey('qualifications.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_table('jobrole_industries',
        sa.Column('industry_id', sa.Integer(), sa.ForeignKey('industries.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('jobrole_id', sa.Integer(), sa.ForeignKey('job_roles.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(120), nullable=True),
        sa.Column('last_name', sa.String(120), nullable=True),
        sa.Column('role', sa.String(16), nullable=False, server_default='mentee'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table('mentors',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('company', sa.String(255), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('years_experience', sa.Integer(), nullable=True),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('industry_id', sa.Integer(), sa.ForeignKey('industries.id', ondelete='SET NULL'), nullable=True),
        sa.Column('job_role_id', sa.Integer(), sa.ForeignKey('job_roles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('education_qualification_id', sa.Integer(), sa.ForeignKey('qualifications.id', ondelete='SET NULL'), nullable=True),
        sa.Column('availability', sa.String(255), nullable=True),
        sa.Column('unavailable_date_time', sa.JSON(), nullable=True),
    )
    op.create_table('mentor_expertises',
        sa.Column('mentor_id', sa.Integer(), sa.ForeignKey('mentors.user_id', ondelete='CASCADE'), primary_key=True),
        sa.Column('expertise_id', sa.Integer(), sa.ForeignKey('expertises.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table('mentees',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('education_qualification_id', sa.Integer(), sa.ForeignKey('qualifications.id', ondelete='SET NULL'), nullable=True),
        sa.Column('current_job_role_id', sa.Integer(), sa.ForeignKey('job_roles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('expected_job_role_id', sa.Integer(), sa.ForeignKey('job_roles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('experience_years', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table('mentor_weekly_schedule',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('mentor_id', sa.Integer(), sa.ForeignKey('mentors.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('weekday', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.CheckConstraint('weekday >= 0 AND weekday <= 6', name='ck_weekly_schedule_weekday'),
    )
    op.create_index('ix_weekly_schedule_mentor_weekday', 'mentor_weekly_schedule', ['mentor_id', 'weekday'])

    op.create_table('mentor_bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('mentor_id', sa.Integer(), sa.ForeignKey('mentors.user_id', ondelete='RESTRICT'), nullable=False),
        sa.Column('mentee_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='reserved'),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('end_time > start_time', name='ck_bookings_range'),
    )
    op.create_index('ix_bookings_mentor_start', 'mentor_bookings', ['mentor_id', 'start_time'])

    op.create_table('mentor_time_exceptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('mentor_id', sa.Integer(), sa.ForeignKey('mentors.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('exception_date', sa.Date(), nullable=False),
        sa.Column('exception_type', sa.String(32), nullable=False, server_default='unavailable'),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('note', sa.String(255), nullable=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('mentor_bookings.id', ondelete='CASCADE'), nullable=True),
    )
    op.create_index('ix_time_exceptions_mentor_date', 'mentor_time_exceptions', ['mentor_id', 'exception_date'])

    op.create_table('resumes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('file_url', sa.String(1024), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_resumes_user_id', 'resumes', ['user_id'])

    op.create_table('mentor_reviews',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('mentor_id', sa.Integer(), sa.ForeignKey('mentors.user_id', ondelete='CASCADE'), nullable=False),
        sa.Column('mentee_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('mentee_name', sa.String(255), nullable=True),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('review', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_mentor_reviews_mentor_id', 'mentor_reviews', ['mentor_id'])

def downgrade():
    op.drop_index('ix_mentor_reviews_mentor_id', table_name='mentor_reviews')
    op.drop_table('mentor_reviews')
    op.drop_index('ix_resumes_user_id', table_name='resumes')
    op.drop_table('resumes')
    op.drop_index('ix_time_exceptions_mentor_date', table_name='mentor_time_exceptions')
    op.drop_table('mentor_time_exceptions')
    op.drop_index('ix_bookings_mentor_start', table_name='mentor_bookings')
    op.drop_table('mentor_bookings')
    op.drop_index('ix_weekly_schedule_mentor_weekday', table_name='mentor_weekly_schedule')
    op.drop_table('mentor_weekly_schedule')
    op.drop_table('mentees')
    op.drop_table('mentor_expertises')
    op.drop_table('mentors')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_table('jobrole_industries')
    op.drop_table('qualification_industries')
    op.drop_table('expertises')
    op.drop_table('industries')
    op.drop_table('job_roles')
    op.drop_table('qualifications')
