from organizer.main import run

run()
