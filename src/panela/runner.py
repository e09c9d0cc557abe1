#!/usr/bin/env python3
"""
Kettle process runner.

Two periodic tasks share one ProcessController:
  physics tick (~300 ms) and clock tick (~1000 ms).
Both take the same asyncio.Lock, so ticks and commands never interleave.

Headless mode (--ticks N) runs N physics ticks back to back without sleeping.

Run:
  panela-kettle --ticks 200 --out out/run.jsonl
  panela-kettle --duration 60
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import signal
from typing import IO, Any, Callable, List, Optional

from panela.kettle.controller import KettleConfig, ProcessController
from panela.kettle.readout import format_elapsed, status

logger = logging.getLogger("panela.runner")


# ============================================================
# Logging
# ============================================================
def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] %(message)s",
        datefmt="%H:%M:%S",
    )


# ============================================================
# Helpers
# ============================================================
def ensure_dir_for_file(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path))
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def write_jsonl(f: Optional[IO[str]], controller: ProcessController) -> None:
    if f is None:
        return
    f.write(json.dumps(controller.to_dict(), ensure_ascii=False) + "\n")
    f.flush()


# ============================================================
# Runtime: single owner of the controller
# ============================================================
class KettleRuntime:
    def __init__(self, controller: ProcessController, out: Optional[IO[str]] = None):
        self.controller = controller
        self.out = out
        self.lock = asyncio.Lock()
        self.physics_ticks = 0

    async def command(self, fn: Callable[..., Any], *args: Any) -> Any:
        async with self.lock:
            return fn(*args)

    async def physics_tick(self, dt: float) -> bool:
        async with self.lock:
            if not self.controller.running:
                return False
            self.controller.tick(dt)
            self.physics_ticks += 1
            write_jsonl(self.out, self.controller)
            return True

    async def clock_tick(self, dt: float) -> None:
        async with self.lock:
            self.controller.tick_clock(dt)


async def physics_task(rt: KettleRuntime, stop_event: asyncio.Event, tick_s: float, report_every: int) -> None:
    while not stop_event.is_set():
        ticked = await rt.physics_tick(tick_s)
        if ticked and report_every > 0 and rt.physics_ticks % report_every == 0:
            log_status(rt.controller, tag="SIM")
        await asyncio.sleep(tick_s)


async def clock_task(rt: KettleRuntime, stop_event: asyncio.Event, clock_s: float) -> None:
    while not stop_event.is_set():
        await asyncio.sleep(clock_s)
        await rt.clock_tick(clock_s)


def log_status(c: ProcessController, tag: str) -> None:
    s = c.state
    logger.info(
        "[%s] t=%s phase=%s T=%.1f/%.0f brix=%.1f torque=%.0f rpm=%.0f/%.0f eff=%.0f status=%s",
        tag,
        format_elapsed(s.elapsed_seconds),
        s.phase,
        s.temperature,
        s.setpoint,
        s.brix,
        s.torque,
        s.effective_rpm,
        s.commanded_rpm,
        s.efficiency,
        status(s),
    )


# ============================================================
# Main
# ============================================================
def install_signal_handlers(stop_event: asyncio.Event) -> None:
    def _handler(*_):
        stop_event.set()

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except ValueError:
        # not on the main thread
        pass


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Batch sugar-concentration kettle process model")
    p.add_argument("--ticks", type=int, default=0, help="Headless: run N physics ticks and exit (0 = realtime)")
    p.add_argument("--duration", type=float, default=0.0, help="Realtime: stop after N seconds (0 = until signal)")
    p.add_argument("--until-finished", action="store_true", help="Stop once the recipe reaches FINISHED")

    p.add_argument("--tick", type=float, default=0.3, help="Physics tick seconds")
    p.add_argument("--clock", type=float, default=1.0, help="Clock tick seconds")
    p.add_argument("--report-every", type=int, default=10, help="Log a status line every N physics ticks")

    p.add_argument("--manual", action="store_true", help="Start in manual mode (no recipe sequencing)")
    p.add_argument("--setpoint", type=float, default=None, help="Manual setpoint °C (implies --manual)")
    p.add_argument("--rpm", type=float, default=None, help="Commanded stirrer rpm")
    p.add_argument("--clock-while-paused", action="store_true", help="Elapsed time keeps counting while paused")

    p.add_argument("--out", default=None, help="Append per-tick telemetry to this JSONL file")
    p.add_argument("--log-level", default="INFO", help="DEBUG / INFO / WARNING")
    return p.parse_args(argv)


def build_controller(args: argparse.Namespace) -> ProcessController:
    cfg = KettleConfig(clock_runs_while_paused=args.clock_while_paused)
    controller = ProcessController(cfg)

    controller.start()
    if args.rpm is not None:
        controller.set_commanded_rpm(args.rpm)
    if args.manual or args.setpoint is not None:
        controller.set_auto_mode(False)
        if args.setpoint is not None:
            controller.set_manual_setpoint(args.setpoint)
    return controller


def run_headless(controller: ProcessController, args: argparse.Namespace, out: Optional[IO[str]]) -> None:
    for n in range(1, max(0, args.ticks) + 1):
        controller.tick(args.tick)
        controller.tick_clock(args.tick)
        write_jsonl(out, controller)

        if args.report_every > 0 and n % args.report_every == 0:
            log_status(controller, tag="SIM")
        if args.until_finished and controller.phase == "FINISHED":
            logger.info("[MAIN] recipe finished after %d ticks", n)
            break


async def run_realtime(controller: ProcessController, args: argparse.Namespace, out: Optional[IO[str]]) -> None:
    stop_event = asyncio.Event()
    install_signal_handlers(stop_event)

    rt = KettleRuntime(controller, out)
    tasks: List[asyncio.Task] = [
        asyncio.create_task(physics_task(rt, stop_event, args.tick, args.report_every)),
        asyncio.create_task(clock_task(rt, stop_event, args.clock)),
    ]

    loop = asyncio.get_running_loop()
    started = loop.time()
    while not stop_event.is_set():
        await asyncio.sleep(0.2)
        if args.duration > 0 and loop.time() - started >= args.duration:
            stop_event.set()
        if args.until_finished and controller.phase == "FINISHED":
            stop_event.set()

    for t in tasks:
        t.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await rt.command(controller.pause)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level)

    controller = build_controller(args)
    mode = "headless" if args.ticks > 0 else "realtime"
    logger.info("[MAIN] mode=%s tick=%.2fs clock=%.2fs out=%s", mode, args.tick, args.clock,
                os.path.abspath(args.out) if args.out else "-")

    out: Optional[IO[str]] = None
    try:
        if args.out:
            ensure_dir_for_file(args.out)
            out = open(args.out, "a", encoding="utf-8")

        if args.ticks > 0:
            run_headless(controller, args, out)
        else:
            try:
                asyncio.run(run_realtime(controller, args, out))
            except KeyboardInterrupt:
                pass
    finally:
        if out is not None:
            out.close()

    log_status(controller, tag="END")


if __name__ == "__main__":
    main()
