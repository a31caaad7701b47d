"""Tests for the settle-based auto-refresh scheduler."""

from jenkins_tui.refresh import AutoRefreshScheduler


class TimerRecorder:
    """Collects arm() calls instead of starting real timers."""

    def __init__(self):
        self.armed = []

    def __call__(self, delay, generation):
        self.armed.append((delay, generation))

    @property
    def last(self):
        return self.armed[-1]


class TestAutoRefreshScheduler:
    def test_start_arms_first_tick(self):
        timer = TimerRecorder()
        scheduler = AutoRefreshScheduler(10, timer)
        scheduler.start()
        assert timer.armed == [(10, scheduler.generation)]
        assert scheduler.armed

    def test_disabled_start_does_not_arm(self):
        timer = TimerRecorder()
        scheduler = AutoRefreshScheduler(10, timer, enabled=False)
        scheduler.start()
        assert timer.armed == []

    def test_next_tick_armed_only_after_work_settles(self):
        """Interval 10, work takes 15: the next tick is armed at +15, firing at +25."""
        now = 0
        arm_times = []

        def arm(delay, generation):
            arm_times.append((now, now + delay, generation))

        scheduler = AutoRefreshScheduler(10, arm)
        scheduler.start()
        assert arm_times[-1][1] == 10

        now = 10
        assert scheduler.accept_tick(scheduler.generation)
        scheduler.tick_dispatched([1, 2])
        assert len(arm_times) == 1
        assert scheduler.waiting

        now = 18
        scheduler.settled(1)
        assert len(arm_times) == 1

        now = 25
        scheduler.settled(2)
        assert len(arm_times) == 2
        armed_at, fires_at, _ = arm_times[-1]
        assert armed_at == 25
        assert fires_at == 35
        assert not scheduler.waiting

    def test_no_overlapping_ticks_while_waiting(self):
        timer = TimerRecorder()
        scheduler = AutoRefreshScheduler(10, timer)
        scheduler.start()
        gen = scheduler.generation
        assert scheduler.accept_tick(gen)
        scheduler.tick_dispatched([7])
        # A duplicate delivery of the same tick is refused
        assert not scheduler.accept_tick(gen)

    def test_tick_with_no_work_rearms_immediately(self):
        timer = TimerRecorder()
        scheduler = AutoRefreshScheduler(10, timer)
        scheduler.start()
        assert scheduler.accept_tick(scheduler.generation)
        scheduler.tick_dispatched([])
        assert len(timer.armed) == 2

    def test_unrelated_settles_ignored(self):
        timer = TimerRecorder()
        scheduler = AutoRefreshScheduler(10, timer)
        scheduler.start()
        scheduler.accept_tick(scheduler.generation)
        scheduler.tick_dispatched([3])
        scheduler.settled(99)
        assert len(timer.armed) == 1
        scheduler.settled(3)
        assert len(timer.armed) == 2

    def test_toggle_off_makes_pending_tick_stale(self):
        timer = TimerRecorder()
        scheduler = AutoRefreshScheduler(10, timer)
        scheduler.start()
        old = scheduler.generation
        assert scheduler.toggle() is False
        assert not scheduler.accept_tick(old)

    def test_toggle_back_on_arms_fresh_generation(self):
        timer = TimerRecorder()
        scheduler = AutoRefreshScheduler(10, timer)
        scheduler.start()
        first = scheduler.generation
        scheduler.toggle()
        assert scheduler.toggle() is True
        _, generation = timer.last
        assert generation != first
        assert not scheduler.accept_tick(first)
        assert scheduler.accept_tick(generation)

    def test_toggle_while_waiting_drops_in_flight_work(self):
        timer = TimerRecorder()
        scheduler = AutoRefreshScheduler(10, timer)
        scheduler.start()
        scheduler.accept_tick(scheduler.generation)
        scheduler.tick_dispatched([5])
        scheduler.toggle()
        scheduler.settled(5)
        assert len(timer.armed) == 1

    def test_stop_invalidates_ticks(self):
        timer = TimerRecorder()
        scheduler = AutoRefreshScheduler(10, timer)
        scheduler.start()
        gen = scheduler.generation
        scheduler.stop()
        assert not scheduler.accept_tick(gen)

    def test_restart_ignores_ticks_from_before(self):
        timer = TimerRecorder()
        scheduler = AutoRefreshScheduler(10, timer)
        scheduler.start()
        old = scheduler.generation
        scheduler.start()
        assert not scheduler.accept_tick(old)
        assert scheduler.accept_tick(scheduler.generation)
