"""``python -m kiri`` runs the kiri CLI."""

from kiri.cli import main

main()
