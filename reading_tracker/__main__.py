from reading_tracker.cli import main

main()
