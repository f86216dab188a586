from mpv_controller.domain.restart import RestartPolicy


class TestRestartPolicy:
    def test_first_restart_uses_base_delay(self):
        policy = RestartPolicy(base_delay=1.0)
        assert policy.next_delay(uptime=0.0) == 1.0
        assert policy.attempts == 1

    def test_backoff_doubles_up_to_ceiling(self):
        policy = RestartPolicy(base_delay=1.0, max_delay=5.0, max_attempts=0)
        delays = [policy.next_delay(uptime=0.0) for _ in range(5)]
        assert delays == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_gives_up_after_budget(self):
        policy = RestartPolicy(max_attempts=2)
        assert policy.next_delay(uptime=0.0) is not None
        assert policy.next_delay(uptime=0.0) is not None
        assert policy.next_delay(uptime=0.0) is None
        assert policy.exhausted

    def test_unbounded_when_max_attempts_zero(self):
        policy = RestartPolicy(max_attempts=0, max_delay=1.0)
        for _ in range(50):
            assert policy.next_delay(uptime=0.0) is not None
        assert not policy.exhausted

    def test_stable_run_resets_budget(self):
        policy = RestartPolicy(max_attempts=1, stable_after=10.0)
        assert policy.next_delay(uptime=0.0) == 1.0
        assert policy.next_delay(uptime=0.0) is None
        assert policy.exhausted

        assert policy.next_delay(uptime=60.0) == 1.0
        assert not policy.exhausted
        assert policy.attempts == 1

    def test_reset(self):
        policy = RestartPolicy(max_attempts=1)
        policy.next_delay(uptime=0.0)
        policy.next_delay(uptime=0.0)
        policy.reset()
        assert policy.attempts == 0
        assert not policy.exhausted

    def test_disabled_policy_never_restarts(self):
        policy = RestartPolicy(enabled=False)
        assert policy.next_delay(uptime=0.0) is None
        assert policy.attempts == 0
        assert not policy.exhausted
