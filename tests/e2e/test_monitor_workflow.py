"""
End-to-end tests for the monitor launch workflow.

A fake monitor plays the container creation protocol: it writes its PID
file, blocks on the start pipe, announces attach readiness, writes a log
line and reports the container PID on the sync pipe.
"""

import pytest

from conmon_runner import (
    NotFoundError,
    RunnerConfig,
    create_and_start,
    with_attach_pipe,
    with_container_id,
    with_container_uuid,
    with_log_driver,
    with_monitor_pid_file,
    with_start_pipe,
    with_sync_pipe,
)

FAKE_CONMON = """
    def arg(flag):
        return sys.argv[sys.argv.index(flag) + 1]

    with open(arg("--conmon-pidfile"), "w") as f:
        f.write(str(os.getpid()))

    os.read(pipe_fd("_OCI_STARTPIPE"), 1)
    send("_OCI_ATTACHPIPE", 0)

    driver, _, log_path = arg("--log-path").partition(":")
    with open(log_path, "w") as f:
        f.write(f"{driver} {arg('--cid')} {arg('--runtime')}\\n")

    send("_OCI_SYNCPIPE", os.getpid())
"""

FAILING_CONMON = """
    send(
        "_OCI_SYNCPIPE",
        -1,
        "runc create failed: unable to start container process\\n"
        'exec: "nginx": executable file not found in $PATH',
    )
"""


@pytest.fixture
def runner_config(temp_dir, clean_env):
    """Config leaving the monitor path to the test."""
    path = temp_dir / "runner.yaml"
    path.write_text(
        "monitor:\n"
        "  path: null\n"
        "  runtime: /usr/bin/crun\n"
        "  log_level: debug\n"
        "  socket_dir: ''\n"
        "handshake:\n"
        "  timeout: 30\n"
        "logging:\n"
        "  level: debug\n"
        "  colors: false\n"
    )
    return RunnerConfig(path)


@pytest.mark.e2e
class TestMonitorWorkflow:
    """Test creating a container through a fake monitor."""

    def test_create_container(self, runner_config, fake_monitor, temp_dir):
        """Test the full start, attach and sync sequence."""
        pid_file = temp_dir / "conmon.pid"
        log_path = temp_dir / "ctr.log"

        with create_and_start(
            fake_monitor(FAKE_CONMON),
            *runner_config.options(),
            with_container_id("ctr1"),
            with_container_uuid("ctr1"),
            with_log_driver("k8s-file", str(log_path)),
            with_monitor_pid_file(str(pid_file)),
            with_sync_pipe(),
            with_start_pipe(),
            with_attach_pipe(),
            lg=runner_config.create_logger(),
        ) as ci:
            ci.signal_start()
            assert ci.wait_for_attach() == 0
            container_pid = ci.container_exit_code()
            assert ci.wait(timeout=30) == 0
            assert ci.pid() == container_pid == ci.process_pid

        assert log_path.read_text() == "k8s-file ctr1 /usr/bin/crun\n"

    def test_runtime_not_found(self, runner_config, fake_monitor, clean_env, temp_dir):
        """Test a runtime failure surfaces as a classified error."""
        clean_env.setenv("CONMON_RUNNER_HANDSHAKE_FULL_OUTPUT", "false")
        config = RunnerConfig(temp_dir / "runner.yaml")
        assert config.handshake.full_output is False

        with create_and_start(
            fake_monitor(FAILING_CONMON),
            *config.options(),
            with_sync_pipe(),
        ) as ci:
            with pytest.raises(NotFoundError) as exc_info:
                ci.container_exit_code()
            ci.wait(timeout=30)

        error = exc_info.value
        assert error.detail == 'exec: "nginx": executable file not found in $PATH'
        assert str(error).endswith(
            ": OCI runtime attempted to invoke a command that was not found"
        )
