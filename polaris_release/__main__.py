from polaris_release.cli.app import main

main()
