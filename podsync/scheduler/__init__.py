from .worker import SweepWorker, print_report, sweep_and_report

__all__ = ["SweepWorker", "print_report", "sweep_and_report"]
