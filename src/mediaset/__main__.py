from mediaset.main import run

run()
