from logstasher.cli import main

main()
