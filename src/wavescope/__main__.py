from wavescope.cli import main

main()
