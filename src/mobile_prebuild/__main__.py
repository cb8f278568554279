from mobile_prebuild.cli.main import main

main()
