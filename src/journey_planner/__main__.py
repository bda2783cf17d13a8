from journey_planner.server import main

main()
