from inkwell.main import run

run()
