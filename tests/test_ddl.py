from liftlog.v1.infra.jobs import ddl


def test_install_statements_use_channel():
    statements = ddl.install_statements("workout_jobs")

    assert len(statements) == 3
    assert "pg_notify(\n    'workout_jobs'" in statements[0]
    assert "'operation', TG_OP" in statements[0]
    assert statements[1].startswith("DROP TRIGGER IF EXISTS")
    assert "AFTER INSERT OR UPDATE OF status ON jobs" in statements[2]


def test_uninstall_drops_trigger_before_function():
    statements = ddl.uninstall_statements()

    assert statements[0].startswith("DROP TRIGGER")
    assert statements[1].startswith("DROP FUNCTION")
