from apiai_fulfillment.main import run

run()
