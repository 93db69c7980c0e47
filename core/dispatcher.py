# =============================================================================
# core/dispatcher.py - Concurrent payload delivery
# =============================================================================

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Protocol, Sequence

from core.models import Machine, SendSummary, UploadResult
from core.payload import encode_machine
from core.samba_client import TransportError
from utils.config import ConfigMissing

ProgressCallback = Callable[[int, int], None]


class Transport(Protocol):
    def open(self) -> None: ...

    def close(self) -> None: ...

    def save(self, filename: str, content: bytes) -> str: ...


class UploadDispatcher:
    """Sends one payload per machine and keeps the ones that failed"""

    def __init__(self, transport_factory: Callable[[], Transport], max_workers: int = 4):
        self.transport_factory = transport_factory
        self.max_workers = max_workers
        self.logger = logging.getLogger(self.__class__.__name__)

    def send(self, machines: Sequence[Machine],
             progress_callback: Optional[ProgressCallback] = None) -> SendSummary:
        """Deliver every machine; succeeded ones are dropped from remaining"""
        summary = SendSummary(total=len(machines))
        if not machines:
            summary.message = "No machine to send."
            return summary

        self.logger.info(f"Sending {len(machines)} machine(s)")

        try:
            transport = self.transport_factory()
            transport.open()
        except (ConfigMissing, TransportError) as e:
            self.logger.error(f"Transport unavailable: {e}")
            summary.results = [
                UploadResult(machine.id, machine.payload_filename, False, str(e))
                for machine in machines
            ]
            return self._finish(summary, machines)

        try:
            summary.results = self._dispatch(transport, machines, progress_callback)
        finally:
            transport.close()

        return self._finish(summary, machines)

    def _dispatch(self, transport: Transport, machines: Sequence[Machine],
                  progress_callback: Optional[ProgressCallback]) -> List[UploadResult]:
        results = []
        completed = 0

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_machine = {
                executor.submit(self._deliver, transport, machine): machine
                for machine in machines
            }

            # Aggregation stays on this thread
            for future in as_completed(future_to_machine):
                results.append(future.result())
                completed += 1

                if progress_callback:
                    progress_callback(completed, len(machines))

        return results

    def _deliver(self, transport: Transport, machine: Machine) -> UploadResult:
        filename = machine.payload_filename
        try:
            content = encode_machine(machine)
            message = transport.save(filename, content)
        except (TransportError, TypeError, ValueError) as e:
            self.logger.warning(f"Delivery of {filename} failed: {e}")
            return UploadResult(machine.id, filename, False, str(e))

        self.logger.debug(message)
        return UploadResult(machine.id, filename, True, message)

    def _finish(self, summary: SendSummary, machines: Sequence[Machine]) -> SendSummary:
        succeeded = {result.machine_id for result in summary.results if result.success}
        summary.sent = len(succeeded)
        summary.remaining = [machine for machine in machines if machine.id not in succeeded]

        last_message = summary.results[-1].message if summary.results else ""
        summary.message = f"{summary.sent} file(s) saved out of {summary.total}.\n {last_message}"
        self.logger.info(f"Sent {summary.sent}/{summary.total} file(s)")
        return summary
