from __future__ import annotations

import asyncio
import logging

from tourist_safety.conditions import EmptyTrace
from tourist_safety.playback import PlaybackState, TraceAnimator
from tourist_safety.snapshot import load_snapshot
from tourist_safety.system import DashboardSession, OperatorSession


async def run_demo(interval: float = 0.2) -> None:
    session = DashboardSession(
        load_snapshot(),
        session=OperatorSession(operator="Inspector Das"),
        animator=TraceAnimator(interval=interval),
    )

    summary = session.summary()
    print(f"=== Tourist Safety Dashboard ({session.operator}) ===")
    print(f"Active tourists: {summary.active_tourists}")
    print(f"Active alerts: {summary.active_alerts}")
    print(f"Tourists in high-risk zones: {summary.tourists_in_risk_zones}/{summary.high_risk_zones} zones")

    print("\nAlerts:")
    for alert in session.alerts_newest_first():
        print(f" - {alert.alert_id} [{alert.status.value}] {alert.category}: {alert.description}")

    alert = session.create_alert("t3", "sos", "SOS triggered from IoT band")
    result = session.dispatch(alert.alert_id)
    if result.accepted:
        nearest = result.assignment
        print(f"\nDispatched {nearest.unit.name} to {alert.alert_id} ({nearest.distance_km:.2f} km away)")
        for option in session.resolver.rank(alert.location, session.snapshot.units)[1:]:
            print(f"   alternative: {option.unit.name} ({option.distance_km:.2f} km)")
    else:
        print(f"\n{result.condition.message}")

    second = session.acknowledge(alert.alert_id)
    if not second.accepted:
        print(f"Acknowledge after dispatch: {second.condition.message}")
    session.resolve(alert.alert_id)
    print(f"Final status: {session.alert_status(alert.alert_id).value}")

    cursor = session.start_playback("t1")
    if isinstance(cursor, EmptyTrace):
        print(cursor.message)
        return

    print(f"\nPath playback: {session.tourist('t1').name}")
    shown = None
    while True:
        if cursor.index != shown:
            point = cursor.current
            print(
                f" Step {cursor.index + 1} of {len(cursor.trace)}: "
                f"{point.location.latitude:.4f}, {point.location.longitude:.4f} at {point.timestamp:%H:%M}"
            )
            shown = cursor.index
        if session.animator.state is not PlaybackState.PLAYING:
            break
        await asyncio.sleep(interval / 4)
    session.close()


def main() -> None:
    logging.basicConfig(level=logging.WARNING)
    asyncio.run(run_demo())


if __name__ == "__main__":
    main()
