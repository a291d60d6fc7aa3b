"""Notification trigger DDL for the jobs table."""

NOTIFY_FUNCTION_NAME = "notify_job_update"
NOTIFY_TRIGGER_NAME = "jobs_notify_trigger"


def notify_function_ddl(channel: str) -> str:
    return f"""
CREATE OR REPLACE FUNCTION {NOTIFY_FUNCTION_NAME}() RETURNS trigger AS $$
BEGIN
  PERFORM pg_notify(
    '{channel}',
    json_build_object(
      'id', NEW.id,
      'status', NEW.status,
      'updated_at', NEW.updated_at,
      'owner', NEW.owner,
      'operation', TG_OP
    )::text
  );
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""


DROP_TRIGGER_DDL = f"DROP TRIGGER IF EXISTS {NOTIFY_TRIGGER_NAME} ON jobs"

CREATE_TRIGGER_DDL = f"""
CREATE TRIGGER {NOTIFY_TRIGGER_NAME}
  AFTER INSERT OR UPDATE OF status ON jobs
  FOR EACH ROW EXECUTE FUNCTION {NOTIFY_FUNCTION_NAME}()
"""

DROP_FUNCTION_DDL = f"DROP FUNCTION IF EXISTS {NOTIFY_FUNCTION_NAME}()"


def install_statements(channel: str) -> list[str]:
    """Statements that (re)install the notify trigger, one per execute."""
    return [notify_function_ddl(channel), DROP_TRIGGER_DDL, CREATE_TRIGGER_DDL]


def uninstall_statements() -> list[str]:
    return [DROP_TRIGGER_DDL, DROP_FUNCTION_DDL]
