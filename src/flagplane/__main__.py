from flagplane.cli import run

run()
