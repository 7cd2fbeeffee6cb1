"""
Tests — ``flask resolve-substitutes`` command.
"""


def test_resolve_substitutes_command(app, add_substitution, stored_transitive):
    add_substitution("alice", "bob")
    add_substitution("bob", "carol")

    result = app.test_cli_runner().invoke(args=["resolve-substitutes", "--tenant", "test-default"])

    assert result.exit_code == 0
    assert "resolved for tenant test-default" in result.output
    assert stored_transitive("alice") == ("resolved", "carol")


def test_resolve_substitutes_command_cycle(app, add_substitution, stored_transitive):
    add_substitution("alice", "bob")
    add_substitution("bob", "alice")

    result = app.test_cli_runner().invoke(args=["resolve-substitutes", "--tenant", "test-default"])

    assert result.exit_code != 0
    assert "Unresolvable" in result.output
    assert stored_transitive("alice") == (None, None)


def test_resolve_substitutes_command_forced(app, add_substitution, stored_transitive):
    add_substitution("alice", "bob")
    add_substitution("bob", "alice")

    result = app.test_cli_runner().invoke(
        args=["resolve-substitutes", "--tenant", "test-default", "--forced"],
    )

    assert result.exit_code == 0
    assert stored_transitive("bob") == ("undefined", None)


def test_resolve_substitutes_command_unknown_tenant(app):
    result = app.test_cli_runner().invoke(args=["resolve-substitutes", "--tenant", "missing"])

    assert result.exit_code != 0
    assert "Unknown tenant" in result.output
