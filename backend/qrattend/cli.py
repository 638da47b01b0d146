# backend/qrattend/cli.py
"""Flask CLI commands."""
import click
from flask import Flask

from qrattend import db

def register(app: Flask) -> None:
    """Register CLI commands."""

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('create-admin')
    @click.option('--email', prompt='Admin email')
    @click.option('--name', prompt='Admin name')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    def create_admin(email, name, password):
        """Create admin user."""
        from qrattend.models.user import User, UserRole

        if User.query.filter_by(email=email.lower().strip()).first():
            raise click.ClickException(f'User {email} already exists')

        admin = User(
            email=email.lower().strip(),
            full_name=name,
            role=UserRole.ADMIN
        )
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
        click.echo(f'Admin user created: {email}')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Seed a trainer, trainees and one scheduled session."""
        from qrattend.services.seed_service import SeedService, DEMO_PASSWORD

        session = SeedService.seed_all()
        click.echo(f'Seeded session {session.id} "{session.title}"')
        click.echo(f'Trainer: trainer@demo.local / {DEMO_PASSWORD}')
        click.echo(f'Trainees: trainee1..4@demo.local / {DEMO_PASSWORD}')

    @app.cli.command('auto-complete-sessions')
    def auto_complete_sessions():
        """Complete active sessions whose scheduled end has passed."""
        from qrattend.services.lifecycle_service import LifecycleService

        result = LifecycleService().auto_complete_expired()
        click.echo(result.message)
        for session_id in result.data.get('completedSessions', []):
            click.echo(f'  completed session {session_id}')
