from helmtree.cli.app import main

main()
