"""Story Relay dev launcher (see story_relay/cli.py)."""

from story_relay.cli import main

if __name__ == "__main__":
    main()
