from scoreboard.services.rate_limit import SlidingWindowLimiter


def test_blocks_after_limit_and_reports_retry_after():
    limiter = SlidingWindowLimiter(3, 60)
    for _ in range(3):
        assert limiter.retry_after("10.0.0.1:a@scoreboard.io") == 0
        limiter.hit("10.0.0.1:a@scoreboard.io")

    wait = limiter.retry_after("10.0.0.1:a@scoreboard.io")
    assert 0 < wait <= 61
    assert limiter.retry_after("10.0.0.1:b@scoreboard.io") == 0


def test_reset_clears_one_key_or_all():
    limiter = SlidingWindowLimiter(1, 60)
    limiter.hit("first")
    limiter.hit("second")

    limiter.reset("first")
    assert limiter.retry_after("first") == 0
    assert limiter.retry_after("second") > 0

    limiter.reset()
    assert limiter.retry_after("second") == 0
