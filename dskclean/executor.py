import logging
import tqdm
from typing import Optional, Sequence
from .conf import RunConfig
from .errors import FatalError, RemovalFailed, ResourceBusy, ResourceNotFound
from .records import DeletionCandidate, Outcome, RunReport

logger = logging.getLogger(__name__)


class Executor:
    def __init__(self, accessor, config: Optional[RunConfig] = None):
        """
        Initializes the Executor with the accessor used for removals.

        Args:
            accessor: Object exposing
                `remove(kind, ref, remove_volumes=False, force=False)`, normally a
                DockerInventory.
            config (Optional[RunConfig]): Run flags. Defaults to a conservative live run.

        Example:
            >>> executor = Executor(DockerInventory.connect(config), config)
        """
        self._accessor = accessor
        self._config: RunConfig = config or RunConfig()

    def execute(
        self,
        candidates: Sequence[DeletionCandidate],
        dry_run: Optional[bool] = None,
        report: Optional[RunReport] = None,
    ) -> RunReport:
        """
        Remove the candidates in the order given, at most once each.

        In a dry run nothing is removed and every candidate is recorded as
        "would remove". In a live run a resource that is already gone or still
        in use is recorded as skipped and any other refusal as failed; none of
        these stop the batch. Losing the runtime stops it: the remaining
        candidates are left untouched and the error is raised with the partial
        report attached, since every removal done so far is durable.

        Args:
            candidates (Sequence[DeletionCandidate]): Classifier output, never reordered.
            dry_run (Optional[bool]): Overrides `config.dry_run` when given.
            report (Optional[RunReport]): Report to fill in. A new one is created when omitted.

        Returns:
            RunReport: Per-kind counts and per-resource outcomes.

        Raises:
            FatalError: If the runtime became unreachable mid-batch. `error.report` holds
                the partial report.

        Example:
            >>> report = executor.execute(candidates, dry_run=True)
            >>> report.total(Outcome.WOULD_REMOVE) == len(candidates)
            True
        """
        dry_run = self._config.dry_run if dry_run is None else dry_run
        if report is None:
            report = RunReport(mode=self._config.mode, dry_run=dry_run)
        for candidate in tqdm.tqdm(
            candidates, desc="Cleaning", unit="resource", disable=self._config.quiet
        ):
            if dry_run:
                logger.info(
                    f"[Dry run] Would remove {candidate.kind.value}: "
                    f"{candidate.label or candidate.ref} ({candidate.reason})"
                )
                report.record(candidate, Outcome.WOULD_REMOVE)
                continue
            try:
                self._remove(candidate)
            except (ResourceNotFound, ResourceBusy) as e:
                logger.warning(f"[Skipped] {e}")
                report.record(candidate, Outcome.SKIPPED, detail=str(e))
            except RemovalFailed as e:
                logger.error(f"[Failed] {e}")
                report.record(candidate, Outcome.FAILED, detail=str(e))
            except FatalError as e:
                logger.error(
                    f"[Aborted] {e}; {len(report.outcomes)} of {len(candidates)} "
                    f"resources were processed"
                )
                e.report = report
                raise
            else:
                report.record(candidate, Outcome.REMOVED)
        return report

    def _remove(self, candidate: DeletionCandidate):
        if candidate.remove_volumes:
            logger.info(
                f"Removing {candidate.kind.value} {candidate.label or candidate.ref} "
                f"and its anonymous volumes ({candidate.reason})"
            )
        else:
            logger.info(
                f"Removing {candidate.kind.value} {candidate.label or candidate.ref} "
                f"({candidate.reason})"
            )
        self._accessor.remove(
            candidate.kind,
            candidate.ref,
            remove_volumes=candidate.remove_volumes,
            force=candidate.force,
        )
