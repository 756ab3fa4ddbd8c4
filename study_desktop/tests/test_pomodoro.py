import pytest

from study_desktop.ui.pomodoro import PomodoroController, TimerMode, TimerState, parse_minutes


def assert_bounds(controller):
    s = controller.session
    assert 0 <= s.remaining_seconds <= s.total_seconds


def test_initial_state(controller):
    assert controller.snapshot() == {
        "mode": "work",
        "state": "idle",
        "remaining_seconds": 1500,
        "total_seconds": 1500,
    }
    assert controller.session.backend_session_id is None
    assert not controller.is_active()


def test_start_work_opens_backend_session(controller, backend):
    controller.set_subject(7)
    controller.set_task(3)
    assert controller.start()
    s = controller.session
    assert s.state is TimerState.RUNNING
    assert s.backend_session_id is not None
    assert s.selected_subject_id == 7
    assert s.task_id == 3
    assert backend.calls_named("start") == [("start", 7, 3, 25)]
    assert controller.is_active()


def test_start_failure_keeps_engine_idle(controller, backend):
    backend.fail.add("start")
    notices = []
    controller.notice.connect(notices.append)
    controller.start()
    assert controller.state() is TimerState.IDLE
    assert controller.session.backend_session_id is None
    assert not controller.is_active()
    assert not controller.is_opening()
    assert notices == ["start unavailable"]


def test_start_break_makes_no_backend_call(controller, backend):
    assert controller.set_mode(TimerMode.BREAK)
    controller.start()
    assert controller.state() is TimerState.RUNNING
    assert controller.session.backend_session_id is None
    assert backend.calls_named("start") == []


def test_pause_and_resume_tear_down_the_tick(controller, ticks):
    controller.start()
    ticks(controller, 10)
    assert controller.pause()
    assert controller.state() is TimerState.PAUSED
    assert not controller.is_active()
    ticks(controller, 5)  # a stray tick while paused changes nothing
    assert controller.remaining() == 1490
    assert controller.resume()
    assert controller.is_active()
    ticks(controller, 1)
    assert controller.remaining() == 1489


def test_pause_resume_outside_their_states_are_ignored(controller):
    assert not controller.pause()
    assert not controller.resume()
    controller.start()
    assert not controller.resume()
    assert not controller.start()


def test_full_work_interval_completes_once_and_flips_to_break(controller, backend, ticks):
    finished = []
    controller.finished.connect(finished.append)
    controller.start()
    sid = controller.session.backend_session_id
    for i in range(1500):
        assert controller.state() is TimerState.RUNNING
        ticks(controller)
        assert_bounds(controller)
    s = controller.session
    assert s.mode is TimerMode.BREAK
    assert s.state is TimerState.IDLE
    assert s.remaining_seconds == 300
    assert s.total_seconds == 300
    assert s.backend_session_id is None
    assert backend.calls_named("complete") == [("complete", sid, 25)]
    assert finished == ["work"]
    assert not controller.is_active()
    # further ticks cannot fire the expiry again
    ticks(controller, 3)
    assert len(backend.calls_named("complete")) == 1


def test_break_expiry_returns_to_work_without_backend_call(controller, backend, ticks):
    controller.set_break_duration(1)
    controller.set_mode("break")
    controller.start()
    ticks(controller, 60)
    s = controller.session
    assert s.mode is TimerMode.WORK
    assert s.state is TimerState.IDLE
    assert s.remaining_seconds == 1500
    assert backend.calls_named("complete") == []
    assert backend.calls_named("start") == []


def test_complete_failure_still_moves_to_break(controller, backend, ticks):
    backend.fail.add("complete")
    notices = []
    controller.notice.connect(notices.append)
    controller.set_work_duration(1)
    controller.start()
    ticks(controller, 60)
    assert controller.mode() is TimerMode.BREAK
    assert controller.session.backend_session_id is None
    assert notices == ["complete unavailable"]


def test_cancel_after_90_seconds_reports_one_minute(controller, backend, ticks):
    controller.start()
    sid = controller.session.backend_session_id
    ticks(controller, 90)
    assert controller.cancel()
    assert backend.calls_named("cancel") == [("cancel", sid, 1)]
    s = controller.session
    assert s.state is TimerState.IDLE
    assert s.mode is TimerMode.WORK
    assert s.remaining_seconds == 1500
    assert s.backend_session_id is None


def test_cancel_twice_issues_one_call(controller, backend, ticks):
    controller.start()
    ticks(controller, 30)
    controller.pause()
    assert controller.cancel()
    assert not controller.cancel()
    assert len(backend.calls_named("cancel")) == 1


def test_cancel_break_resets_to_work(controller, backend, ticks):
    controller.set_mode(TimerMode.BREAK)
    controller.start()
    ticks(controller, 10)
    controller.cancel()
    assert controller.mode() is TimerMode.WORK
    assert controller.remaining() == 1500
    assert backend.calls_named("cancel") == []


def test_cancel_failure_is_advisory(controller, backend):
    backend.fail.add("cancel")
    notices = []
    controller.notice.connect(notices.append)
    controller.start()
    controller.cancel()
    assert controller.state() is TimerState.IDLE
    assert notices == ["cancel unavailable"]


@pytest.mark.parametrize("value,ok", [(1, True), (120, True), (0, False), (121, False), (-5, False), ("45", True), ("abc", False), ("", False)])
def test_work_duration_range(controller, value, ok):
    assert controller.set_work_duration(value) is ok
    if ok:
        assert controller.remaining() == int(value) * 60
        assert controller.session.total_seconds == int(value) * 60
    else:
        assert controller.remaining() == 1500


@pytest.mark.parametrize("value,ok", [(1, True), (60, True), (0, False), (61, False)])
def test_break_duration_range(controller, value, ok):
    assert controller.set_break_duration(value) is ok
    assert controller.break_minutes == (value if ok else 5)


def test_durations_locked_while_not_idle(controller):
    controller.start()
    assert not controller.set_work_duration(30)
    assert not controller.set_break_duration(10)
    assert not controller.set_mode(TimerMode.BREAK)
    controller.pause()
    assert not controller.set_work_duration(30)
    assert controller.work_minutes == 25
    assert controller.session.total_seconds == 1500


def test_changing_work_duration_in_break_mode_keeps_break_countdown(controller):
    controller.set_mode(TimerMode.BREAK)
    controller.set_work_duration(50)
    assert controller.remaining() == 300


def test_session_id_only_while_work_session_open(controller, ticks):
    assert controller.session.backend_session_id is None
    controller.start()
    assert controller.session.backend_session_id is not None
    controller.pause()
    assert controller.session.backend_session_id is not None
    controller.resume()
    controller.cancel()
    assert controller.session.backend_session_id is None


def test_offline_controller_runs_without_recorder(qapp, ticks):
    c = PomodoroController(work_minutes=1, break_minutes=1)
    c.start()
    ticks(c, 60)
    assert c.mode() is TimerMode.BREAK
    assert c.state() is TimerState.IDLE


def test_open_in_flight_blocks_second_start_and_settings(slow_controller, backend, deferred):
    c = slow_controller
    assert c.start()
    assert c.state() is TimerState.IDLE
    assert c.is_opening()
    assert not c.start()
    assert not c.set_work_duration(30)
    deferred.flush()
    assert c.state() is TimerState.RUNNING
    assert len(backend.calls_named("start")) == 1


def test_open_in_flight_is_signalled(slow_controller, backend, deferred):
    seen = []
    slow_controller.opening_changed.connect(seen.append)
    backend.fail.add("start")
    slow_controller.start()
    assert seen == [True]
    deferred.flush()
    assert seen == [True, False]
    assert not slow_controller.is_opening()


def test_late_complete_result_after_cancel_is_harmless(slow_controller, backend, deferred, ticks):
    c = slow_controller
    c.set_work_duration(1)
    c.start()
    deferred.flush()
    ticks(c, 60)  # complete queued, id already cleared
    assert c.mode() is TimerMode.BREAK
    c.start()
    c.cancel()  # break has no backend session
    deferred.flush()
    assert len(backend.calls_named("complete")) == 1
    assert backend.calls_named("cancel") == []
    assert c.session.backend_session_id is None


def test_tick_signal_reports_remaining(controller, ticks):
    seen = []
    controller.tick.connect(seen.append)
    controller.start()
    ticks(controller, 3)
    assert seen == [1499, 1498, 1497]


def test_state_changes_are_signalled(controller):
    states = []
    controller.state_changed.connect(states.append)
    controller.start()
    controller.pause()
    controller.resume()
    controller.cancel()
    assert states == ["running", "paused", "running", "idle"]


@pytest.mark.parametrize("text,expected", [("25", 25), (" 7 ", 7), ("2.5", None), ("25min", None), ("x", None), (None, None)])
def test_parse_minutes(text, expected):
    assert parse_minutes(text) == expected
