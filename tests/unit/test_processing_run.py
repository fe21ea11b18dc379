import pytest

from models.processing_run import ProcessingRun, RunStage, new_correlation_id


class TestProcessingRun:
    def test_happy_path_transitions(self) -> None:
        run = ProcessingRun(correlation_id="proc_1", image_bytes=b"x")
        for stage in (RunStage.RECOGNIZING, RunStage.RECOGNIZED, RunStage.GENERATING, RunStage.COMPLETED):
            run.advance(stage)
        assert run.finished

    def test_error_from_recognizing(self) -> None:
        run = ProcessingRun(correlation_id="proc_1", image_bytes=b"x")
        run.advance(RunStage.RECOGNIZING)
        run.advance(RunStage.ERRORED)
        assert run.finished

    def test_skipping_a_stage_is_rejected(self) -> None:
        run = ProcessingRun(correlation_id="proc_1", image_bytes=b"x")
        with pytest.raises(RuntimeError, match="cannot move"):
            run.advance(RunStage.GENERATING)

    def test_terminal_stage_is_final(self) -> None:
        run = ProcessingRun(correlation_id="proc_1", image_bytes=b"x")
        run.advance(RunStage.RECOGNIZING)
        run.advance(RunStage.ERRORED)
        with pytest.raises(RuntimeError):
            run.advance(RunStage.RECOGNIZED)


class TestCorrelationIds:
    def test_ids_are_unique(self) -> None:
        ids = {new_correlation_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_id_prefix(self) -> None:
        assert new_correlation_id().startswith("proc_")
