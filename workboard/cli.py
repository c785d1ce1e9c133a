"""Flask CLI commands for local work on the board.

    flask --app wsgi seed-demo
    flask --app wsgi issue-token 1
"""

import logging

import click

from workboard.models import db
from workboard.models.auth import User
from workboard.models.project import Project, ProjectMember
from workboard.services import item_service, stage_service
from workboard.services.jwt_service import generate_access_token

logger = logging.getLogger(__name__)

_DEMO_STAGES = (
    ("To Do", "TASK"),
    ("In Progress", "TASK"),
    ("Done", "TASK"),
    ("Triage", "INCIDENT"),
    ("Resolved", "INCIDENT"),
    ("Requested", "RESOURCE"),
    ("Fulfilled", "RESOURCE"),
)


def register_cli(app):
    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Create a demo admin, a member, one project and its default stages."""
        admin = User(email="admin@workboard.local", full_name="Demo Admin", role="ADMIN")
        member = User(email="rep@workboard.local", full_name="Demo Rep", role="SALES_REP")
        db.session.add_all([admin, member])
        db.session.flush()
        project = Project(name="Demo project", owner_id=admin.id, created_by=admin.id)
        db.session.add(project)
        db.session.flush()
        db.session.add(ProjectMember(project_id=project.id, user_id=member.id))
        db.session.commit()

        for name, stage_type in _DEMO_STAGES:
            stage_service.create_stage(project.id, name, stage_type=stage_type)
        item_service.create_task(project.id, {"title": "Confirm delivery slots"}, admin)
        item_service.create_incident(project.id, {"title": "Forklift out of service"}, member)

        logger.info("Seeded demo project %s (admin=%s, member=%s)", project.id, admin.id, member.id)
        click.echo(f"project={project.id} admin={admin.id} member={member.id}")

    @app.cli.command("issue-token")
    @click.argument("user_id", type=int)
    def issue_token_cmd(user_id):
        """Print an access token for USER_ID (local testing only)."""
        user = db.session.get(User, user_id)
        if user is None:
            raise click.ClickException(f"User {user_id} not found")
        click.echo(generate_access_token(user.id, user.role))
