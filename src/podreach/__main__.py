from podreach.cli import main

main()
