"""
Flask CLI commands.
"""

from painperdu.cli import DEFAULT_PASSWORD
from painperdu.models import Category, Product, User


def test_system_init_creates_admin_once(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert "Created administrator" in result.output

    result = runner.invoke(args=["system", "init"])
    assert "already exists" in result.output
    assert db_session.query(User).filter_by(role="admin").count() == 1


def test_seed_sample_is_idempotent(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["system", "init"])

    assert runner.invoke(args=["system", "seed-sample"]).exit_code == 0
    products = db_session.query(Product).count()
    assert products > 0
    assert db_session.query(User).filter_by(role="seller").count() == 2

    runner.invoke(args=["system", "seed-sample"])
    assert db_session.query(Product).count() == products
    assert db_session.query(Category).count() == 5


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--username", "marie", "--email", "marie@painperdu.test",
        "--password", DEFAULT_PASSWORD,
    ])
    assert result.exit_code == 0

    result = runner.invoke(args=["users", "list", "--role", "seller"])
    assert "marie" in result.output


def test_users_create_rejects_weak_password(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--username", "weakling", "--email", "weak@painperdu.test", "--password", "weak",
    ])
    assert result.exit_code != 0
    assert db_session.query(User).filter_by(username="weakling").count() == 0
