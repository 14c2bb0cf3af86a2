import logging

from pygame.math import Vector3

from aviary.logging_config import LOGGER_NAME, setup_logging
from aviary.sim.core.octree import Octree


def test_setup_logging_does_not_stack_handlers(tmp_path):
    log_file = tmp_path / "aviary.log"
    try:
        setup_logging(logging.DEBUG, log_file)
        logger = setup_logging(logging.DEBUG, log_file)

        assert logger.name == LOGGER_NAME
        assert len(logger.handlers) == 2

        tree = Octree([Vector3(), Vector3(1.0, 1.0, 1.0)])
        tree.expand_to_fit(Vector3(100.0, 0.0, 0.0))
        for handler in logger.handlers:
            handler.flush()

        assert "Octree root expanded" in log_file.read_text()
    finally:
        logger = logging.getLogger(LOGGER_NAME)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
