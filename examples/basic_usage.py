"""
Basic usage examples for screenbudget.

Walks through a day on a shared device: a limit, a blown budget, a
redeemed code and an eviction.
"""

from datetime import datetime, timedelta

from screenbudget import (
    InMemoryUsageSource,
    ScreenTimeService,
    ValidationError,
    RedemptionError,
    configure_logging,
)

OWN_PACKAGE = "com.example.screenbudget"


class PrintingHost:
    """Host that prints instead of touching a real device."""

    def is_monitoring_service_enabled(self):
        return True

    def go_home(self):
        print("  host: showing home screen")

    def kill_background_process(self, package_id):
        print(f"  host: stopping background processes of {package_id}")


def example_budget(service, usage):
    """Daily limit and remaining time."""
    print("=" * 60)
    print("Example 1: Daily Budget")
    print("=" * 60)

    service.admin.set_daily_limit(60)
    print(f"Remaining with no usage: {service.engine.remaining_minutes()} min")

    now = datetime.now().astimezone()
    usage.record_session("com.example.game", now - timedelta(minutes=70), now)
    print(f"Remaining after 70 min of play: {service.engine.remaining_minutes()} min")
    print()


def example_codes(service):
    """Generating and redeeming grant codes."""
    print("=" * 60)
    print("Example 2: Grant Codes")
    print("=" * 60)

    codes = service.admin.generate_codes(count=3, minutes_per_code=15)
    print(f"Codes: {', '.join(c.value for c in codes)}")

    result = service.admin.redeem_code_or_pin(codes[0].value)
    print(f"{result.message}, remaining: {result.remaining_minutes} min")

    try:
        service.admin.redeem_code_or_pin(codes[0].value)
    except RedemptionError as e:
        print(f"Second redemption refused ({e.kind.value}): {e}")

    try:
        service.admin.generate_codes(count=150, minutes_per_code=15)
    except ValidationError as e:
        print(f"Invalid batch: {e}")
    print()


def example_enforcement(service):
    """Evicting an app once the day's time is gone."""
    print("=" * 60)
    print("Example 3: Enforcement")
    print("=" * 60)

    service.admin.unlock()
    service.admin.set_daily_limit(0)
    service.monitor.subscribe(
        lambda d: print(f"  channel: {d.package} -> {d.verdict.value}")
    )

    decision = service.monitor.on_foreground_changed("com.example.game")
    print(f"Decision: {decision.verdict.value}")

    decision = service.monitor.on_foreground_changed("com.google.android.leanbacklauncher")
    print(f"Launcher: {decision.verdict.value}")
    print()


if __name__ == "__main__":
    configure_logging()
    usage = InMemoryUsageSource(own_package=OWN_PACKAGE)
    service = ScreenTimeService(usage, PrintingHost(), OWN_PACKAGE)
    service.initialize_if_needed()

    example_budget(service, usage)
    example_codes(service)
    example_enforcement(service)
