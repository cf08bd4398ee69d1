import logging

import sinegroups.config
import sinegroups.session


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main () -> None:

	"""
	Main entry point: play the piece to the OSC synth named in config.yaml.
	"""

	logger.info("sinegroups starting...")

	config = sinegroups.config.PieceConfig.from_yaml()

	session = sinegroups.session.PieceSession.from_config(config)
	session.play()


if __name__ == "__main__":
	main()
